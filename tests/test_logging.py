"""Tests for logger level handling and bus event logging."""

from __future__ import annotations

import logging

from core import logging as autonomy_logging
from core.event_bus import Event, EventKind
from core.ops_models import HealthLevel


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(str(record.msg))


def test_set_level_falls_back_to_info() -> None:
    logger = autonomy_logging.logger
    previous = logger.level
    try:
        autonomy_logging.set_level("debug")
        assert logger.level == logging.DEBUG
        autonomy_logging.set_level("not-a-level")
        assert logger.level == logging.INFO
    finally:
        logger.setLevel(previous)


def test_log_bus_event_skips_per_tick_events() -> None:
    logger = autonomy_logging.logger
    handler = _ListHandler()
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        autonomy_logging.log_bus_event(Event(kind=EventKind.HEALTH_CHANGE, payload=HealthLevel.HEALTHY))
        autonomy_logging.log_bus_event(Event(kind=EventKind.CYCLE_FAILED, payload=None, source="reflection"))
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous)

    assert len(handler.messages) == 1
    assert "[reflection] cycle_failed" in handler.messages[0]
