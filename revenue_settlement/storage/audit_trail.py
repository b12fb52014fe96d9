"""
Append-only, date-partitioned audit trail.

Each event goes into ``<root>/YYYY-MM-DD.jsonl`` (UTC date of the event
timestamp), one JSON object per line. Lines are only ever appended; there is
no update or delete operation.
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from revenue_settlement.core.domain.errors import AuditWriteError, DataValidationError
from revenue_settlement.core.domain.types import AuditEvent
from revenue_settlement.storage.jsonl import append_line

LOGGER = logging.getLogger(__name__)

PARTITION_SUFFIX = ".jsonl"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditTrail:
    """Writes each audit event as a JSON line to its date partition.

    Appends to one partition are serialized by a per-partition lock, and
    each event is written with a single write call followed by fsync, so
    events never interleave mid-line. The file handle is opened per append:
    nothing is left buffered on shutdown.
    """

    def __init__(
        self,
        root: str | Path,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._root = Path(root)
        self._clock = clock or _utc_now
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def append(self, actor: str, event_type: str, event_data: Mapping[str, Any]) -> AuditEvent:
        """Record one settlement action and return the stored event."""
        timestamp = self._clock().astimezone(timezone.utc)
        try:
            event = AuditEvent(
                event_id=str(uuid.uuid4()),
                timestamp=timestamp,
                actor=actor,
                event_type=event_type,
                event_data=dict(event_data),
                signature=None,
            )
        except ValidationError as exc:
            raise AuditWriteError(f"invalid audit event: {exc}") from exc

        line = json.dumps(event.model_dump(mode="json"))
        partition = event.partition
        path = self.partition_path(partition)

        with self._lock_for(partition):
            try:
                append_line(path, line)
            except OSError as exc:
                raise AuditWriteError(f"failed to append audit event to {path}: {exc}") from exc

        LOGGER.debug(
            "Audit event appended",
            extra={"event_id": event.event_id, "event_type": event_type, "partition": partition},
        )
        return event

    def read(self, partition: str) -> list[AuditEvent]:
        """Return the partition's events in append order."""
        path = self.partition_path(partition)
        if not path.exists():
            return []

        with self._lock_for(partition):
            text = path.read_text(encoding="utf-8")

        events: list[AuditEvent] = []
        for lineno, raw in enumerate(text.splitlines(), start=1):
            if not raw.strip():
                continue
            try:
                events.append(AuditEvent.model_validate(json.loads(raw)))
            except (json.JSONDecodeError, ValidationError):
                # Left behind by a crash mid-write; never rewritten.
                LOGGER.warning(
                    "Skipping unreadable audit line",
                    extra={"partition": partition, "line_number": lineno},
                )
        return events

    def partitions(self) -> list[str]:
        """Existing partitions, oldest first."""
        if not self._root.is_dir():
            return []
        return sorted(p.stem for p in self._root.glob(f"*{PARTITION_SUFFIX}"))

    def partition_path(self, partition: str) -> Path:
        try:
            datetime.strptime(partition, "%Y-%m-%d")
        except ValueError as exc:
            raise DataValidationError(f"invalid audit partition {partition!r}") from exc
        return self._root / f"{partition}{PARTITION_SUFFIX}"

    def _lock_for(self, partition: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(partition)
            if lock is None:
                lock = threading.Lock()
                self._locks[partition] = lock
            return lock
