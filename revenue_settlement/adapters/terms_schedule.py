"""Basis-point redemption terms schedule.

Off-chain stand-in for a fund's redemption contract, used by administrative
settlement when no contract binding is available. Each component is rounded
down to whole cents; the net payout never goes negative.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import TYPE_CHECKING

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import BPS_DENOMINATOR, NAV_SCALE, RedemptionTerms

if TYPE_CHECKING:
    from revenue_settlement.core.config.settlement_config import FundConfig

_CENT = Decimal("0.01")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_DOWN)


class BpsTermsSchedule:
    """RedemptionTermsCalculator driven by the fund's ``terms`` config."""

    def compute_terms(
        self,
        *,
        fund: FundConfig,
        nav_per_token: int,
        token_amount: int,
    ) -> RedemptionTerms:
        if nav_per_token < 0 or token_amount < 0:
            raise DataValidationError("nav_per_token and token_amount must be non-negative")

        schedule = fund.terms
        with localcontext() as ctx:
            ctx.prec = 80
            gross = _cents(Decimal(nav_per_token * token_amount) / Decimal(NAV_SCALE))

            def _bps(bps: int) -> Decimal:
                return _cents(gross * Decimal(bps) / Decimal(BPS_DENOMINATOR))

            penalty = _bps(schedule.penalty_bps)
            liquidity_fee = _bps(schedule.liquidity_fee_bps)
            discount = _bps(schedule.discount_bps)
            net = max(Decimal("0.00"), gross - penalty - liquidity_fee - discount)

        return RedemptionTerms(
            gross_value=gross,
            penalty_amount=penalty,
            liquidity_fee_amount=liquidity_fee,
            discount_amount=discount,
            net_payout=net,
        )
