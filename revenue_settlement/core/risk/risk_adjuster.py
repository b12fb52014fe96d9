"""Insurance risk adjustment.

Evaluates a business's insurance exposure profile and returns a deterministic
risk score and redemption multiplier. Higher risk slightly reduces the
redemption value, never below the configured floor.
"""

from __future__ import annotations

import math
from decimal import Decimal

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import InsuranceAdjustment, RiskProfile
from revenue_settlement.core.risk.risk_config import RiskAdjustmentConfig

NEUTRAL_MULTIPLIER = Decimal("1.0")

NOTE_NEUTRAL = "No insurance exposure profile, neutral multiplier applied"
NOTE_APPLIED = "Insurance risk adjustment applied"


class RiskAdjuster:
    """Pure scoring function over an optional RiskProfile."""

    def __init__(self, config: RiskAdjustmentConfig | None = None) -> None:
        self.config = config or RiskAdjustmentConfig()

    def compute_adjustment(self, profile: RiskProfile | None) -> InsuranceAdjustment:
        if profile is None:
            return InsuranceAdjustment(
                risk_score=0,
                adjustment_multiplier=NEUTRAL_MULTIPLIER,
                factors={},
                note=NOTE_NEUTRAL,
            )

        factors = dict(profile.risk_factors)
        for name, value in factors.items():
            if not math.isfinite(value):
                raise DataValidationError(
                    f"risk factor {name!r} for business {profile.business_id} is not finite"
                )

        risk_score = self._volatility_points(factors) + self._industry_tier(profile.business_id, factors)

        return InsuranceAdjustment(
            risk_score=risk_score,
            adjustment_multiplier=self.multiplier_for(risk_score),
            factors=factors,
            note=NOTE_APPLIED,
        )

    def multiplier_for(self, risk_score: int) -> Decimal:
        """Non-increasing in ``risk_score``; 1.0 at zero, floored at the configured minimum."""
        if risk_score < 0:
            raise DataValidationError(f"risk_score must be non-negative, got {risk_score}")
        raw = NEUTRAL_MULTIPLIER - Decimal(risk_score) * self.config.multiplier_step
        return max(self.config.multiplier_floor, raw)

    def _volatility_points(self, factors: dict[str, float]) -> int:
        volatility = factors.get(self.config.volatility_factor)
        if volatility is None:
            return 0
        for bucket in self.config.volatility_buckets:
            if volatility > bucket.above:
                return bucket.points
        return 0

    def _industry_tier(self, business_id: str, factors: dict[str, float]) -> int:
        tier = factors.get(self.config.industry_tier_factor, 0)
        if tier < 0 or tier != int(tier):
            raise DataValidationError(
                f"{self.config.industry_tier_factor} for business {business_id} "
                f"must be a non-negative integer, got {tier!r}"
            )
        return int(tier)
