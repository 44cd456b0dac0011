# backend/src/neurorbm/observability/__init__.py
"""
Paquete de observabilidad.
Bus in-memory de eventos training.*, contexto de correlation_id para logging
y middleware HTTP de trazabilidad.
"""

from .bus_eventos import BUS, EventBus, Evento
from .logging_context import correlation_id_var, install_logrecord_factory

__all__ = [
    "BUS",
    "EventBus",
    "Evento",
    "correlation_id_var",
    "install_logrecord_factory",
]
