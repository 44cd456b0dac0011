"""
tests/unit/test_bus_eventos.py

Bus in-memory training.* y destino de logging.
"""
import logging

from neurorbm.observability.bus_eventos import EventBus
from neurorbm.observability.destinos import log_handler
from neurorbm.observability.logging_context import correlation_id_var, install_logrecord_factory


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_publish_subscribe_unsubscribe():
    bus = EventBus()
    got = []
    bus.subscribe("training.epoch_end", got.append)

    evt = bus.publish("training.epoch_end", {"correlation_id": "j1", "epoch": 0})
    assert got == [evt]
    assert evt.correlation_id == "j1"

    assert bus.unsubscribe("training.epoch_end", got.append)
    assert not bus.unsubscribe("training.epoch_end", got.append)
    bus.publish("training.epoch_end", {"correlation_id": "j1", "epoch": 1})
    assert len(got) == 1


def test_event_without_correlation_id_gets_one():
    evt = EventBus().publish("training.started", {})
    assert evt.correlation_id


def test_failing_handler_does_not_stop_delivery():
    bus = EventBus()
    got = []

    def broken(evt):
        raise RuntimeError("destino caído")

    bus.subscribe("training.completed", broken)
    bus.subscribe("training.completed", got.append)

    h = _ListHandler()
    log = logging.getLogger("neurorbm.events.bus")
    log.addHandler(h)
    try:
        bus.publish("training.completed", {"correlation_id": "j2"})
    finally:
        log.removeHandler(h)

    assert len(got) == 1
    assert any(r.levelno == logging.WARNING and "destino caído" in r.getMessage() for r in h.records)


def test_log_destination_uses_event_correlation_id():
    install_logrecord_factory()
    h = _ListHandler()
    log_handler.logger.addHandler(h)
    try:
        log_handler._to_log(EventBus().publish("training.started", {"correlation_id": "job-42", "model": "rbm"}))
    finally:
        log_handler.logger.removeHandler(h)

    assert h.records and "training.started" in h.records[0].getMessage()
    assert h.records[0].correlation_id == "job-42"
    assert correlation_id_var.get() == "-"
