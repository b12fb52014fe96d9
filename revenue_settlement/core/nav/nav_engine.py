"""NAV engine computing fixed-point net asset value per token.

The NAV is derived from the trailing window of a fund's monthly revenue:

    avg_net_revenue   = mean(net_revenue over the selected records)
    tokenized_portion = avg_net_revenue * tokenized_percent_bps / 10000
    nav_per_token     = tokenized_portion * 1e18 / total_supply

Currency arithmetic is done with ``Decimal``. The conversion boundaries are
explicit:

1. tokenized portion -> whole cents, ROUND_HALF_UP
2. cents -> 1e18 fixed point, exact integer multiply/divide
3. fixed point -> per token, integer floor division by the supply
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import TYPE_CHECKING, Callable

from revenue_settlement.core.domain.errors import (
    DataValidationError,
    InsufficientWindowError,
    NoDataError,
    ZeroSupplyError,
)
from revenue_settlement.core.domain.types import BPS_DENOMINATOR, NAV_SCALE, NavSnapshot

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import RevenueRecord
    from revenue_settlement.core.ports.revenue_store import RevenueStore

LOGGER = logging.getLogger(__name__)

CENTS_PER_UNIT: int = 100
_CENT = Decimal("0.01")

# Precision of the local decimal context; independent of the caller's context.
_DECIMAL_PRECISION = 50


class NavEngine:
    """Computes NAV per token for a fund from its revenue records.

    Pure read + compute: the engine holds no mutable state and never writes
    to the revenue store.
    """

    def __init__(
        self,
        revenue_store: RevenueStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = revenue_store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def compute_nav(self, fund_key: str, window_months: int, total_supply: int) -> int:
        """Return the NAV per token scaled to 1e18."""
        return self.snapshot(fund_key, window_months, total_supply).nav_per_token

    def snapshot(self, fund_key: str, window_months: int, total_supply: int) -> NavSnapshot:
        """Compute the NAV and return it with the window it was derived from."""
        if not fund_key:
            raise DataValidationError("fund_key must be non-empty")
        if isinstance(window_months, bool) or not isinstance(window_months, int) or window_months < 1:
            raise DataValidationError(f"window_months must be a positive integer, got {window_months!r}")
        if isinstance(total_supply, bool) or not isinstance(total_supply, int) or total_supply < 0:
            raise DataValidationError(f"total_supply must be a non-negative integer, got {total_supply!r}")
        if total_supply == 0:
            raise ZeroSupplyError(f"Total supply is zero for fund {fund_key}, cannot compute NAV.")

        usable = self._select_window(fund_key, window_months)

        tokenized_cents = self.tokenized_portion_cents(usable)
        if tokenized_cents < 0:
            raise DataValidationError(
                f"Average net revenue for fund {fund_key} is negative, NAV is undefined"
            )
        nav_per_token = (tokenized_cents * NAV_SCALE // CENTS_PER_UNIT) // total_supply

        LOGGER.debug(
            "NAV computed",
            extra={
                "fund_key": fund_key,
                "window_months": window_months,
                "records_used": len(usable),
                "tokenized_cents": tokenized_cents,
                "nav_per_token": nav_per_token,
            },
        )

        return NavSnapshot(
            fund_key=fund_key,
            window_months=window_months,
            records_used=len(usable),
            nav_per_token=nav_per_token,
            computed_at=self._clock(),
        )

    def _select_window(self, fund_key: str, window_months: int) -> list[RevenueRecord]:
        """Return the usable records of the trailing window, most recent first."""
        records = self._store.records_for(fund_key)
        if not records:
            raise NoDataError(f"No revenue records found for fund {fund_key}")

        ordered = sorted(records, key=lambda r: r.period_label, reverse=True)
        selected = ordered[:window_months]

        usable = [r for r in selected if r.belongs_to(fund_key)]
        if not usable:
            raise InsufficientWindowError(
                f"No usable revenue records for fund {fund_key} in the last {window_months} periods"
            )

        missing = [r.period_label for r in usable if r.net_revenue is None]
        if missing:
            raise DataValidationError(
                f"Revenue record(s) {', '.join(missing)} for fund {fund_key} have no net_revenue"
            )

        if len(usable) < window_months:
            LOGGER.info(
                "Partial NAV window",
                extra={
                    "fund_key": fund_key,
                    "window_months": window_months,
                    "records_used": len(usable),
                },
            )
        return usable

    @staticmethod
    def tokenized_portion_cents(usable: list[RevenueRecord]) -> int:
        """Tokenized share of the average net revenue, in whole cents.

        ``usable`` must be ordered most recent first: the tokenized percentage
        is taken from the latest record only, since it reflects the fund's
        current structure rather than its history.
        """
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION

            total = sum((Decimal(r.net_revenue) for r in usable), Decimal(0))
            avg_net_revenue = total / Decimal(len(usable))

            percent_bps = usable[0].tokenized_percent_bps
            tokenized_portion = avg_net_revenue * Decimal(percent_bps) / Decimal(BPS_DENOMINATOR)

            cents = tokenized_portion.quantize(_CENT, rounding=ROUND_HALF_UP) * CENTS_PER_UNIT
            return int(cents)
