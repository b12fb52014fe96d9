"""Idempotent payout dispatch for on-chain redemption events.

Processing order for one event:

1. identity key checked against the payout ledger (duplicates stop here,
   before any audit append or payout trigger)
2. PAYOUT_RECORDED appended to the audit trail
3. PayoutRecord stored in the ledger with status ``pending``
4. PayoutExecutor invoked with a bounded timeout
5. outcome appended to the ledger and the audit trail

Steps 1-3 run under one lock so concurrent deliveries of the same event
cannot both pass the duplicate check.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from revenue_settlement.core.domain.errors import DispatchError, DuplicateEventError
from revenue_settlement.core.domain.types import AuditEventType, PayoutRecord
from revenue_settlement.core.events.events import (
    DuplicateRedemptionDiscardedEvent,
    PayoutDispatchFailedEvent,
    PayoutRecordedEvent,
)

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import PayoutIdentity, RedemptionOnChainEvent
    from revenue_settlement.core.events.event_bus import EventBus
    from revenue_settlement.core.ports.payout_executor import PayoutExecutor
    from revenue_settlement.storage.audit_trail import AuditTrail
    from revenue_settlement.storage.payout_ledger import PayoutLedger

LOGGER = logging.getLogger(__name__)

DISPATCHER_ACTOR = "payout-dispatcher"


class DispatchOutcome:
    """String constants describing what happened to one event."""

    DUPLICATE = "duplicate"
    DISPATCHED = "dispatched"
    DISPATCH_FAILED = "dispatch_failed"


@dataclass(slots=True)
class DispatchResult:
    identity: PayoutIdentity
    outcome: str
    error: DispatchError | None = None


class PayoutDispatcher:
    """Turns redemption events into exactly one payout record each."""

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        *,
        ledger: PayoutLedger,
        audit: AuditTrail,
        executor: PayoutExecutor,
        event_bus: EventBus,
        timeout_seconds: float,
        max_workers: int = 4,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._audit = audit
        self._executor = executor
        self._event_bus = event_bus
        self._timeout_seconds = timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = threading.Lock()
        # Identities whose executor call is currently running.
        self._dispatching: set[PayoutIdentity] = set()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="payout")

    # ------------------------------------------------------------------
    # Event path
    # ------------------------------------------------------------------

    def handle(self, event: RedemptionOnChainEvent) -> DispatchResult:
        """Record and dispatch one redemption event.

        Audit or ledger write failures propagate: nothing is dispatched for
        an event that was not durably recorded.
        """
        identity = event.identity_key

        with self._lock:
            if self._ledger.contains(identity):
                return self._discard_duplicate(event)

            record = PayoutRecord.from_event(event, recorded_at=self._clock())

            self._audit.append(
                DISPATCHER_ACTOR,
                AuditEventType.PAYOUT_RECORDED,
                record.model_dump(mode="json"),
            )
            try:
                self._ledger.record(record)
            except DuplicateEventError:
                return self._discard_duplicate(event)

            self._dispatching.add(identity)

        self._event_bus.emit(
            PayoutRecordedEvent(
                ts=time.time(),
                fund_key=record.fund_key,
                tx_hash=record.tx_hash,
                period_id=record.period_id,
                holder=record.holder,
                net_payout=record.net_payout,
            )
        )

        try:
            return self._dispatch(record)
        finally:
            with self._lock:
                self._dispatching.discard(identity)

    def _discard_duplicate(self, event: RedemptionOnChainEvent) -> DispatchResult:
        identity = event.identity_key
        LOGGER.info(
            "Duplicate redemption event discarded",
            extra={"identity": identity.as_dict(), "event_timestamp": event.event_timestamp},
        )
        self._event_bus.emit(
            DuplicateRedemptionDiscardedEvent(
                ts=time.time(),
                fund_key=event.fund_key,
                tx_hash=event.tx_hash,
                period_id=event.period_id,
                holder=event.holder,
            )
        )
        return DispatchResult(identity=identity, outcome=DispatchOutcome.DUPLICATE)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> list[DispatchResult]:
        """Retry payouts that are pending or failed.

        Records are never appended again; only new dispatch outcomes are.
        Payouts currently being dispatched are skipped.
        """
        with self._lock:
            candidates = [
                r for r in self._ledger.records()
                if self._ledger.status_of(r.identity_key) in ("pending", "failed")
                and r.identity_key not in self._dispatching
            ]
            for record in candidates:
                self._dispatching.add(record.identity_key)

        results: list[DispatchResult] = []
        for record in candidates:
            try:
                results.append(self._dispatch(record))
            finally:
                with self._lock:
                    self._dispatching.discard(record.identity_key)

        LOGGER.info(
            "Payout reconciliation finished",
            extra={
                "retried": len(results),
                "dispatched": sum(1 for r in results if r.outcome == DispatchOutcome.DISPATCHED),
            },
        )
        return results

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _dispatch(self, record: PayoutRecord) -> DispatchResult:
        identity = record.identity_key
        error = self._execute_with_timeout(record)

        if error is None:
            self._ledger.mark(identity, "dispatched")
            self._audit.append(
                DISPATCHER_ACTOR,
                AuditEventType.PAYOUT_DISPATCHED,
                {"identity": identity.as_dict(), "status": "dispatched"},
            )
            return DispatchResult(identity=identity, outcome=DispatchOutcome.DISPATCHED)

        LOGGER.warning(
            "Payout dispatch failed",
            extra={"identity": identity.as_dict(), "reason": error.reason},
        )
        self._ledger.mark(identity, "failed", error.reason)
        self._audit.append(
            DISPATCHER_ACTOR,
            AuditEventType.PAYOUT_DISPATCH_FAILED,
            {"identity": identity.as_dict(), "status": "failed", "error": error.reason},
        )
        self._event_bus.emit(
            PayoutDispatchFailedEvent(
                ts=time.time(),
                fund_key=record.fund_key,
                tx_hash=record.tx_hash,
                period_id=record.period_id,
                holder=record.holder,
                reason=error.reason,
            )
        )
        return DispatchResult(identity=identity, outcome=DispatchOutcome.DISPATCH_FAILED, error=error)

    def _execute_with_timeout(self, record: PayoutRecord) -> DispatchError | None:
        try:
            # A pool shut down underneath us refuses the submit with RuntimeError.
            future = self._pool.submit(self._executor.execute, record)
            future.result(timeout=self._timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            return DispatchError(
                record.identity_key,
                f"payout executor timed out after {self._timeout_seconds}s",
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return DispatchError(record.identity_key, f"{type(exc).__name__}: {exc}")
        return None

    def close(self) -> None:
        """Release the executor pool; running payout calls are not interrupted."""
        self._pool.shutdown(wait=False, cancel_futures=True)
