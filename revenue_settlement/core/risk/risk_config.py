"""Risk adjustment configuration model."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VolatilityBucket(BaseModel):
    """Adds ``points`` to the risk score when volatility exceeds ``above``."""

    above: float = Field(..., ge=0)
    points: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


def _default_buckets() -> list[VolatilityBucket]:
    return [
        VolatilityBucket(above=0.20, points=3),
        VolatilityBucket(above=0.10, points=2),
        VolatilityBucket(above=0.05, points=1),
    ]


class RiskAdjustmentConfig(BaseModel):
    """Deterministic insurance scoring rules.

    The defaults are the underwriting rules currently in force; they are
    configurable so the insurance model can evolve without code changes.
    """

    volatility_factor: str = "revenueVolatility"
    industry_tier_factor: str = "industryRiskTier"

    # Highest threshold first; the first bucket exceeded wins.
    volatility_buckets: list[VolatilityBucket] = Field(default_factory=_default_buckets)

    multiplier_step: Decimal = Field(default=Decimal("0.02"), gt=0)
    multiplier_floor: Decimal = Field(default=Decimal("0.85"), ge=Decimal("0.85"), le=Decimal("1.0"))

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> RiskAdjustmentConfig:
        """Create a RiskAdjustmentConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @model_validator(mode="after")
    def validate_bucket_order(self) -> RiskAdjustmentConfig:
        """Buckets must be strictly descending by threshold."""
        thresholds = [b.above for b in self.volatility_buckets]
        if thresholds != sorted(thresholds, reverse=True) or len(set(thresholds)) != len(thresholds):
            raise ValueError("volatility_buckets must be strictly descending by 'above'")
        return self
