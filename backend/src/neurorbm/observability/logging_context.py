# backend/src/neurorbm/observability/logging_context.py
from __future__ import annotations

import logging
from contextvars import ContextVar

# Contexto global para correlation_id (job_id del entrenamiento o id de request)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


def install_logrecord_factory() -> None:
    """
    Instala una LogRecordFactory que copia el correlation_id del ContextVar en
    cada LogRecord. Idempotente.

    No combinar con ``extra={"correlation_id": ...}``: logging rechaza un
    ``extra`` que sobrescribe atributos ya presentes en el record.
    """
    old_factory = logging.getLogRecordFactory()
    if getattr(old_factory, "_neurorbm_cid", False):
        return

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.__dict__["correlation_id"] = correlation_id_var.get() or "-"
        return record

    record_factory._neurorbm_cid = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(record_factory)
