"""
Insurance exposure profile lookup.

Layout of the file store::

    <root>/<business_id>/insurance_exposure.json

    {"riskFactors": {"revenueVolatility": 0.22, "industryRiskTier": 1}}

The snake_case key `risk_factors` is accepted as well. Any other top-level key,
or a file without factors, is rejected.

A business without an exposure file has no profile; the lookup returns None.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import RiskProfile

EXPOSURE_FILE_NAME = "insurance_exposure.json"


class _ExposureFile(BaseModel):
    risk_factors: dict[str, float] = Field(..., alias="riskFactors")

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class FileRiskProfileStore:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def lookup(self, business_id: str) -> RiskProfile | None:
        path = self._root / business_id / EXPOSURE_FILE_NAME
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DataValidationError(f"exposure file {path} is not valid JSON: {exc}") from exc
        try:
            exposure = _ExposureFile.model_validate(raw)
            return RiskProfile(business_id=business_id, risk_factors=exposure.risk_factors)
        except ValidationError as exc:
            raise DataValidationError(f"exposure file {path} is malformed: {exc}") from exc


class InMemoryRiskProfileStore:
    def __init__(self, profiles: Mapping[str, RiskProfile] | None = None) -> None:
        self._profiles = dict(profiles or {})

    def put(self, profile: RiskProfile) -> None:
        self._profiles[profile.business_id] = profile

    def lookup(self, business_id: str) -> RiskProfile | None:
        return self._profiles.get(business_id)
