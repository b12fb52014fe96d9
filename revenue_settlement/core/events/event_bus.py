"""
Simple synchronous event bus.
"""
from __future__ import annotations

import threading
from typing import Any, Iterable

from revenue_settlement.core.events.event_sink import EventSink


class EventBus:
    """Dispatches events to registered sinks.

    Listener workers for different funds emit concurrently, so delivery to
    the sinks is serialized.
    """

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._lock = threading.Lock()

    def register(self, sink: EventSink) -> None:
        """Register a new sink."""
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        """Emit an event to all sinks."""
        with self._lock:
            for sink in self._sinks:
                sink.on_event(event)
