"""Payout executor protocol.

Money movement (stablecoin transfer, bank transfer, ledger posting) lives
behind this boundary. Implementations raise on failure; the dispatcher bounds
each call with a timeout and treats a timeout as a retryable failure.

A timed-out call may still complete later and reconciliation retries failed
payouts, so implementations must be idempotent per identity key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import PayoutRecord


class PayoutExecutor(Protocol):
    def execute(self, record: PayoutRecord) -> None:
        """Execute the payout described by ``record``."""
