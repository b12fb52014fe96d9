"""
Logging event sink.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any


class LoggingEventSink:
    """Logs domain events using the standard logging module."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        payload = asdict(event) if is_dataclass(event) else {"event": str(event)}
        self._logger.info(
            "domain_event %s",
            type(event).__name__,
            extra={"event": payload},
        )
