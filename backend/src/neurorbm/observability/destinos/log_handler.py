# backend/src/neurorbm/observability/destinos/log_handler.py
"""
Destino de observabilidad vía logging.

- Se suscribe al bus in-memory para los eventos training.*
  (started | epoch_end | paused | resumed | completed | failed).
- Escribe cada evento en el logger ``neurorbm.events`` con el correlation_id
  del evento (job_id) en el LogRecord.

Idempotente con _WIRED para evitar duplicar suscripciones en entornos con --reload.
"""

import logging

from ..bus_eventos import BUS, Evento
from ..logging_context import correlation_id_var
from ...models.observer.eventos_entrenamiento import TRAINING_TOPICS

logger = logging.getLogger("neurorbm.events")
logger.setLevel(logging.INFO)

# Bandera de idempotencia (evita múltiples suscripciones con --reload)
_WIRED = False


def _to_log(evt: Evento) -> None:
    """
    Handler que escribe el evento en logs.
    El correlation_id se fija en el ContextVar mientras se emite el registro,
    así lo recogen la LogRecordFactory y el filtro ``cid`` del dictConfig.
    """
    token = correlation_id_var.set(evt.correlation_id)
    try:
        logger.info("%s %s", evt.name, evt.payload)
    finally:
        correlation_id_var.reset(token)


def wire_logging_destination() -> None:
    """
    Conecta una única vez el log handler al bus de eventos.
    Si se llama más de una vez (p. ej. por --reload), no duplica suscripciones.
    """
    global _WIRED
    if _WIRED:
        return

    for topic in TRAINING_TOPICS:
        BUS.subscribe(topic, _to_log)

    _WIRED = True
    logger.info("Observability logging wired for topics: %s", TRAINING_TOPICS)
