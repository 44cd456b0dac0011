# backend/src/neurorbm/observability/logging_filters.py
import logging

from .logging_context import correlation_id_var

class CorrelationIdLogFilter(logging.Filter):
    """
    Inyecta 'correlation_id' en el LogRecord si no está presente,
    para que el formateador siempre pueda usar %(correlation_id)s.
    """
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get() or "-"
        return True
