"""
Append-only payout ledger.

The ledger is the canonical store of PayoutRecords and their dispatch status.
It is a JSON-lines file with two kinds of entries::

    {"kind": "record", "record": {...PayoutRecord...}}
    {"kind": "status", "identity": {...}, "status": "dispatched", "error": null, "at": "..."}

A record line is written exactly once per identity key. Dispatch outcomes are
appended as status lines, so a failed dispatch stays distinguishable from one
that was never attempted and can be retried without touching the record.
The in-memory index is rebuilt from the file on open.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from revenue_settlement.core.domain.errors import DuplicateEventError
from revenue_settlement.core.domain.types import DispatchStatus, PayoutIdentity, PayoutRecord
from revenue_settlement.storage.jsonl import append_line

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LedgerEntry:
    """Current view of one payout: the record plus its latest dispatch status."""

    record: PayoutRecord
    status: DispatchStatus
    attempts: int = 0
    last_error: str | None = None


class PayoutLedger:
    """JSON-lines payout ledger with an in-memory identity index."""

    def __init__(
        self,
        path: str | Path,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._entries: dict[PayoutIdentity, LedgerEntry] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def contains(self, identity: PayoutIdentity) -> bool:
        with self._lock:
            return identity in self._entries

    def status_of(self, identity: PayoutIdentity) -> DispatchStatus | None:
        with self._lock:
            entry = self._entries.get(identity)
            return entry.status if entry is not None else None

    def entry(self, identity: PayoutIdentity) -> LedgerEntry | None:
        with self._lock:
            return self._entries.get(identity)

    def records(self, status: DispatchStatus | None = None) -> list[PayoutRecord]:
        """Records in ledger order, optionally filtered by dispatch status."""
        with self._lock:
            return [
                e.record for e in self._entries.values()
                if status is None or e.status == status
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Mutations (append-only)
    # ------------------------------------------------------------------

    def record(self, payout: PayoutRecord) -> None:
        """Durably store a new payout record with status ``pending``.

        Raises DuplicateEventError when the identity key is already stored.
        """
        identity = payout.identity_key
        with self._lock:
            if identity in self._entries:
                raise DuplicateEventError(identity)
            self._append({"kind": "record", "record": payout.model_dump(mode="json")})
            self._entries[identity] = LedgerEntry(record=payout, status="pending")

    def mark(self, identity: PayoutIdentity, status: DispatchStatus, error: str | None = None) -> None:
        """Append a dispatch outcome for an existing record."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                raise KeyError(f"no payout record for {identity}")
            self._append(
                {
                    "kind": "status",
                    "identity": identity.as_dict(),
                    "status": status,
                    "error": error,
                    "at": self._clock().isoformat(),
                }
            )
            self._apply_status(entry, status, error)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_status(entry: LedgerEntry, status: DispatchStatus, error: str | None) -> None:
        entry.status = status
        entry.last_error = error
        if status != "pending":
            entry.attempts += 1

    def _append(self, obj: dict) -> None:
        append_line(self._path, json.dumps(obj))

    def _load(self) -> None:
        if not self._path.exists():
            return

        with self._path.open("r", encoding="utf-8") as fh:
            for lineno, raw in enumerate(fh, start=1):
                if not raw.strip():
                    continue
                try:
                    obj = json.loads(raw)
                    self._replay(obj)
                except (json.JSONDecodeError, ValidationError, KeyError, TypeError) as exc:
                    LOGGER.warning(
                        "Skipping unreadable payout ledger line",
                        extra={"path": str(self._path), "line_number": lineno, "error": str(exc)},
                    )

        LOGGER.info(
            "Payout ledger loaded",
            extra={"path": str(self._path), "records": len(self._entries)},
        )

    def _replay(self, obj: dict) -> None:
        kind = obj["kind"]
        if kind == "record":
            payout = PayoutRecord.model_validate(obj["record"])
            identity = payout.identity_key
            if identity in self._entries:
                LOGGER.warning("Duplicate payout record line ignored", extra={"identity": identity.as_dict()})
                return
            self._entries[identity] = LedgerEntry(record=payout, status="pending")
        elif kind == "status":
            identity = PayoutIdentity(**obj["identity"])
            entry = self._entries.get(identity)
            if entry is None:
                LOGGER.warning("Status line for unknown payout ignored", extra={"identity": obj["identity"]})
                return
            self._apply_status(entry, obj["status"], obj.get("error"))
        else:
            raise KeyError(f"unknown ledger entry kind {kind!r}")
