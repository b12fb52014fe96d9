"""
In-memory recording sink.
"""
from __future__ import annotations

import threading
from typing import Any


class RecordingEventSink:
    """Keeps every emitted event in memory, in emission order."""

    def __init__(self) -> None:
        self._events: list[Any] = []
        self._lock = threading.Lock()

    def on_event(self, event: Any) -> None:
        with self._lock:
            self._events.append(event)

    def events(self, event_type: type | None = None) -> list[Any]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [e for e in self._events if isinstance(e, event_type)]
