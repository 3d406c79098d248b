"""In-process publish/subscribe bus for autonomy state transitions."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Callable, Deque

from core.logging import logger as LOGGER
from core.ops_models import HealthLevel


class EventKind(str, Enum):
    """Event names published on the bus."""

    CYCLE_COMPLETED = "cycle_completed"
    CYCLE_FAILED = "cycle_failed"
    INSIGHTS_GENERATED = "insights_generated"
    IMPROVEMENTS_IDENTIFIED = "improvements_identified"
    HEARTBEAT = "heartbeat"
    HEALTH_CHANGE = "health_change"
    ALERT = "alert"
    CRITICAL = "critical"
    INTERVAL_ADJUSTED = "interval_adjusted"
    INTERVAL_RESET = "interval_reset"
    SETTINGS_UPDATED = "settings_updated"


# Populated by the modules that own each payload type.
_PAYLOAD_TYPES: dict[EventKind, tuple[type, ...]] = {
    EventKind.INSIGHTS_GENERATED: (list,),
    EventKind.IMPROVEMENTS_IDENTIFIED: (list,),
    EventKind.HEALTH_CHANGE: (HealthLevel,),
}


def register_payload(kind: EventKind, *payload_types: type) -> None:
    """Declare the payload type(s) accepted for an event kind."""

    _PAYLOAD_TYPES[kind] = tuple(payload_types)


def payload_types(kind: EventKind) -> tuple[type, ...]:
    return _PAYLOAD_TYPES.get(kind, ())


@dataclass(frozen=True)
class Event:
    """A published bus event."""

    kind: EventKind
    payload: Any
    source: str = "system"
    created_at: float = field(default_factory=time.time)


Handler = Callable[[Event], None]


class EventBus:
    """Synchronous fan-out bus confined to the event loop thread.

    Handlers run inline inside ``publish``; a failing handler is logged and
    does not stop delivery to the others.
    """

    def __init__(self, history_len: int = 200) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {}
        self._wildcard: list[Handler] = []
        self._history: Deque[Event] = deque(maxlen=max(1, history_len))
        self._published = 0

    def subscribe(self, kind: EventKind, handler: Handler) -> None:
        handlers = self._handlers.setdefault(kind, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, kind: EventKind, handler: Handler) -> None:
        handlers = self._handlers.get(kind)
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[kind]

    def subscribe_all(self, handler: Handler) -> None:
        if handler not in self._wildcard:
            self._wildcard.append(handler)

    def unsubscribe_all(self, handler: Handler) -> None:
        if handler in self._wildcard:
            self._wildcard.remove(handler)

    def publish(self, kind: EventKind, payload: Any, *, source: str = "system") -> Event:
        expected = payload_types(kind)
        if expected and not isinstance(payload, expected):
            names = ", ".join(t.__name__ for t in expected)
            raise TypeError(
                f"Payload for {kind.value} must be {names}, got {type(payload).__name__}"
            )
        event = Event(kind=kind, payload=payload, source=source)
        self._history.append(event)
        self._published += 1
        for handler in list(self._handlers.get(kind, ())) + list(self._wildcard):
            try:
                handler(event)
            except Exception:  # noqa: BLE001 - one handler must not starve the rest
                LOGGER.exception("[EventBus] Error in event handler for %s", kind.value)
        return event

    def listener_count(self, kind: EventKind) -> int:
        return len(self._handlers.get(kind, ()))

    def recent(self, kind: EventKind | None = None, limit: int = 20) -> list[Event]:
        events = [e for e in self._history if kind is None or e.kind == kind]
        return events[-limit:] if limit > 0 else []

    @property
    def published_count(self) -> int:
        return self._published
