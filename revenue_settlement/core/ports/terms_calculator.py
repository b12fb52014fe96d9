"""Redemption terms protocol.

The fund's redemption contract decides penalties, liquidity fees and
discounts. The settlement layer treats it as an opaque pure function of the
NAV and the redeemed token amount.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from revenue_settlement.core.config.settlement_config import FundConfig
    from revenue_settlement.core.domain.types import RedemptionTerms


class RedemptionTermsCalculator(Protocol):
    def compute_terms(
        self,
        *,
        fund: FundConfig,
        nav_per_token: int,
        token_amount: int,
    ) -> RedemptionTerms:
        """Return the contract's redemption terms for ``token_amount`` tokens."""
