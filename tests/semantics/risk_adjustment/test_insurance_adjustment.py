"""
Semantic test: insurance risk adjustment.

Invariant:
The multiplier is 1.0 without a profile, lies in [0.85, 1.0], and never
increases as the risk score grows. The same profile always yields the
same adjustment.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import RiskProfile
from revenue_settlement.core.risk.risk_adjuster import NOTE_NEUTRAL, RiskAdjuster
from revenue_settlement.core.risk.risk_config import RiskAdjustmentConfig
from revenue_settlement.storage.risk_profiles import FileRiskProfileStore


def _profile(**factors: float) -> RiskProfile:
    return RiskProfile(business_id="biz-1", risk_factors=factors)


def test_high_volatility_and_tier_one() -> None:
    adjustment = RiskAdjuster().compute_adjustment(_profile(revenueVolatility=0.22, industryRiskTier=1))

    assert adjustment.risk_score == 4
    assert adjustment.adjustment_multiplier == Decimal("0.92")
    assert adjustment.factors == {"revenueVolatility": 0.22, "industryRiskTier": 1}


def test_missing_profile_is_neutral() -> None:
    adjustment = RiskAdjuster().compute_adjustment(None)

    assert adjustment.risk_score == 0
    assert adjustment.adjustment_multiplier == Decimal("1.0")
    assert adjustment.note == NOTE_NEUTRAL


def test_volatility_bucket_thresholds_are_exclusive() -> None:
    adjuster = RiskAdjuster()

    assert adjuster.compute_adjustment(_profile(revenueVolatility=0.20)).risk_score == 2
    assert adjuster.compute_adjustment(_profile(revenueVolatility=0.10)).risk_score == 1
    assert adjuster.compute_adjustment(_profile(revenueVolatility=0.05)).risk_score == 0
    assert adjuster.compute_adjustment(_profile(revenueVolatility=0.051)).risk_score == 1


def test_multiplier_is_floored() -> None:
    adjustment = RiskAdjuster().compute_adjustment(_profile(revenueVolatility=0.5, industryRiskTier=9))

    assert adjustment.risk_score == 12
    assert adjustment.adjustment_multiplier == Decimal("0.85")


def test_multiplier_never_increases_with_score() -> None:
    adjuster = RiskAdjuster()
    multipliers = [adjuster.multiplier_for(score) for score in range(0, 20)]

    assert multipliers[0] == Decimal("1.0")
    assert all(a >= b for a, b in zip(multipliers, multipliers[1:]))
    assert all(Decimal("0.85") <= m <= Decimal("1.0") for m in multipliers)


def test_adjustment_is_deterministic() -> None:
    adjuster = RiskAdjuster()
    profile = _profile(revenueVolatility=0.13, industryRiskTier=2)

    assert adjuster.compute_adjustment(profile) == adjuster.compute_adjustment(profile)


@pytest.mark.parametrize("tier", [-1, 1.5])
def test_invalid_industry_tier_is_rejected(tier: float) -> None:
    with pytest.raises(DataValidationError):
        RiskAdjuster().compute_adjustment(_profile(industryRiskTier=tier))


def test_non_finite_factor_is_rejected() -> None:
    with pytest.raises(DataValidationError):
        RiskAdjuster().compute_adjustment(_profile(revenueVolatility=float("nan")))


def test_custom_rules_from_json() -> None:
    config = RiskAdjustmentConfig.from_json_obj(
        {
            "volatility_buckets": [{"above": 0.3, "points": 5}],
            "multiplier_step": "0.01",
        }
    )
    adjustment = RiskAdjuster(config).compute_adjustment(_profile(revenueVolatility=0.31, industryRiskTier=1))

    assert adjustment.risk_score == 6
    assert adjustment.adjustment_multiplier == Decimal("0.94")


def test_unordered_buckets_are_rejected() -> None:
    with pytest.raises(ValueError):
        RiskAdjustmentConfig.from_json_obj(
            {"volatility_buckets": [{"above": 0.1, "points": 1}, {"above": 0.2, "points": 2}]}
        )


def test_file_store_lookup(tmp_path: Path) -> None:
    biz_dir = tmp_path / "biz-1"
    biz_dir.mkdir()
    (biz_dir / "insurance_exposure.json").write_text(
        json.dumps({"risk_factors": {"revenueVolatility": 0.22, "industryRiskTier": 1}}),
        encoding="utf-8",
    )
    store = FileRiskProfileStore(tmp_path)

    profile = store.lookup("biz-1")

    assert profile is not None
    assert RiskAdjuster().compute_adjustment(profile).risk_score == 4
    assert store.lookup("biz-unknown") is None


def _write_exposure(root: Path, payload: object) -> None:
    biz_dir = root / "biz-1"
    biz_dir.mkdir()
    (biz_dir / "insurance_exposure.json").write_text(json.dumps(payload), encoding="utf-8")


def test_file_store_reads_camel_case_exposure_files(tmp_path: Path) -> None:
    _write_exposure(tmp_path, {"riskFactors": {"revenueVolatility": 0.22, "industryRiskTier": 1}})

    profile = FileRiskProfileStore(tmp_path).lookup("biz-1")

    assert profile is not None
    adjustment = RiskAdjuster().compute_adjustment(profile)
    assert adjustment.risk_score == 4
    assert adjustment.adjustment_multiplier == Decimal("0.92")


@pytest.mark.parametrize(
    "payload",
    [
        {"riskFactor": {"revenueVolatility": 0.22}},
        {"riskFactors": {"revenueVolatility": 0.22}, "notes": "manual"},
        {},
        [{"revenueVolatility": 0.22}],
    ],
)
def test_file_store_rejects_unrecognised_exposure_layouts(tmp_path: Path, payload: object) -> None:
    _write_exposure(tmp_path, payload)

    with pytest.raises(DataValidationError):
        FileRiskProfileStore(tmp_path).lookup("biz-1")
