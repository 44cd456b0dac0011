# backend/src/neurorbm/observability/bus_eventos.py
from __future__ import annotations
from typing import Callable, Dict, List, Any
from dataclasses import dataclass
import threading, time, uuid, logging

# Evento base para training.* (extensible)
@dataclass
class Evento:
    name: str              # e.g., "training.started"
    ts: float              # epoch seconds
    correlation_id: str    # job_id
    payload: Dict[str, Any]

class EventBus:
    """Bus simple in-memory (pub/sub) con entrega síncrona y sin garantías.

    El publicador (p. ej. el worker de entrenamiento) ejecuta los handlers en su
    propio hilo; si un destino necesita otro contexto (UI, cola) debe
    reencaminar el evento por su cuenta.
    """
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Evento], None]]] = {}
        self._lock = threading.Lock()
        self._log = logging.getLogger("neurorbm.events.bus")

    def subscribe(self, topic: str, handler: Callable[[Evento], None]) -> None:
        """Registra un handler para un tópico concreto (e.g., 'training.epoch_end')."""
        with self._lock:
            self._subs.setdefault(topic, []).append(handler)
        self._log.debug("Suscrito handler a topic=%s: %s",
                        topic, getattr(handler, "__name__", repr(handler)))

    def unsubscribe(self, topic: str, handler: Callable[[Evento], None]) -> bool:
        """Elimina un handler; devuelve False si no estaba suscrito."""
        with self._lock:
            handlers = self._subs.get(topic, [])
            if handler not in handlers:
                return False
            handlers.remove(handler)
        return True

    def publish(self, topic: str, payload: Dict[str, Any]) -> Evento:
        """Publica un evento al tópico dado y entrega a todos los suscriptores."""
        evt = Evento(
            name=topic,
            ts=time.time(),
            correlation_id=payload.get("correlation_id") or str(uuid.uuid4()),
            payload=payload
        )
        with self._lock:
            handlers = list(self._subs.get(topic, []))
        if not handlers:
            self._log.debug("event=%s sin suscriptores payload=%s", evt.name, evt.payload)
            return evt

        for handler in handlers:
            try:
                handler(evt)
            except Exception as e:
                # Un destino de observabilidad no puede abortar el entrenamiento
                self._log.warning("Handler error for topic=%s: %s", topic, e)
        return evt

# Singleton (simple) para importar en otras capas
BUS = EventBus()


__all__ = ["Evento", "EventBus", "BUS"]
