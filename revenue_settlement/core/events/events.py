"""
Domain event models.

These events represent immutable facts observed while listening for and
dispatching redemption payouts. They are consumed by loggers and monitoring
pipelines; the audit trail is written separately and is not an event sink.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ListenerStateTransitionEvent:
    ts: float
    fund_key: str
    prev_state: str | None
    next_state: str


@dataclass(slots=True)
class PayoutRecordedEvent:
    ts: float
    fund_key: str
    tx_hash: str
    period_id: int
    holder: str

    net_payout: int


@dataclass(slots=True)
class DuplicateRedemptionDiscardedEvent:
    ts: float
    fund_key: str
    tx_hash: str
    period_id: int
    holder: str


@dataclass(slots=True)
class PayoutDispatchFailedEvent:
    ts: float
    fund_key: str
    tx_hash: str
    period_id: int
    holder: str

    reason: str
