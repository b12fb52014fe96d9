"""Revenue store protocol.

Read-only access to canonical per-fund, per-month revenue records produced by
the ingestion pipeline. Implementations must not require locking for reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import RevenueRecord


class RevenueStore(Protocol):
    def records_for(self, fund_key: str) -> list[RevenueRecord]:
        """Return every stored record for ``fund_key`` in no particular order.

        An unknown fund yields an empty list. Malformed stored data raises
        DataValidationError.
        """
