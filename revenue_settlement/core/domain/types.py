"""Core shared data models and schemas.

This module defines the canonical Pydantic models used across the system for
revenue records, NAV snapshots, risk profiles, settlement results, audit
events and on-chain redemption payouts. These types are treated as schema
definitions and intentionally prioritize structural clarity over minimal
class size.

Currency amounts are ``Decimal``. On-chain quantities (token amounts, the
1e18-scaled NAV, contract-computed values) are plain ``int`` and are carried
through verbatim.
"""

# pylint: disable=line-too-long,missing-class-docstring,missing-function-docstring
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

NAV_SCALE: int = 10**18
BPS_DENOMINATOR: int = 10_000

PERIOD_LABEL_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# ---------------------------------------------------------------------------
# Revenue models
# ---------------------------------------------------------------------------


class RevenueRecord(BaseModel):
    """Canonical monthly revenue record for one fund.

    ``net_revenue`` may be missing when upstream data is incomplete; such a
    record exists but fails NAV computation when it falls inside the window.
    """

    fund_key: str = Field(..., min_length=1)
    period_label: str = Field(..., pattern=PERIOD_LABEL_PATTERN)

    net_revenue: Decimal | None = None
    tokenized_percent_bps: int = Field(..., ge=0, le=BPS_DENOMINATOR)

    gross_revenue: Decimal | None = None
    refunds: Decimal | None = None
    fees: Decimal | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def belongs_to(self, fund_key: str) -> bool:
        return self.fund_key == fund_key


class NavSnapshot(BaseModel):
    fund_key: str = Field(..., min_length=1)
    window_months: int = Field(..., gt=0)
    records_used: int = Field(..., gt=0)
    nav_per_token: int = Field(..., ge=0)
    computed_at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Risk models
# ---------------------------------------------------------------------------


class RiskProfile(BaseModel):
    business_id: str = Field(..., min_length=1)
    risk_factors: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)


class InsuranceAdjustment(BaseModel):
    risk_score: int = Field(..., ge=0)
    adjustment_multiplier: Decimal = Field(..., ge=Decimal("0.85"), le=Decimal("1.0"))
    factors: dict[str, float] = Field(default_factory=dict)
    note: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Settlement models
# ---------------------------------------------------------------------------


class RedemptionTerms(BaseModel):
    """Redemption result computed by the fund's redemption contract."""

    gross_value: Decimal = Field(..., ge=0)
    penalty_amount: Decimal = Field(..., ge=0)
    liquidity_fee_amount: Decimal = Field(..., ge=0)
    discount_amount: Decimal = Field(..., ge=0)
    net_payout: Decimal = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class SettlementRecord(BaseModel):
    business_id: str = Field(..., min_length=1)
    fund_key: str = Field(..., min_length=1)
    fund_name: str = Field(..., min_length=1)

    nav: NavSnapshot
    token_amount: int = Field(..., gt=0)

    redemption_terms: RedemptionTerms
    insurance_adjustment: InsuranceAdjustment
    adjusted_redemption_value: Decimal = Field(..., ge=0)

    timestamp: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Audit models
# ---------------------------------------------------------------------------


class AuditEventType:
    """String constants for audit event types."""

    SETTLEMENT_COMPLETED = "SETTLEMENT_COMPLETED"
    PAYOUT_RECORDED = "PAYOUT_RECORDED"
    PAYOUT_DISPATCHED = "PAYOUT_DISPATCHED"
    PAYOUT_DISPATCH_FAILED = "PAYOUT_DISPATCH_FAILED"


class AuditEvent(BaseModel):
    event_id: str = Field(..., min_length=1)
    timestamp: datetime
    actor: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1)
    event_data: dict[str, Any] = Field(default_factory=dict)

    # Reserved for future notarization of the log.
    signature: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def partition(self) -> str:
        return self.timestamp.date().isoformat()


# ---------------------------------------------------------------------------
# On-chain redemption / payout models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PayoutIdentity:
    """Deduplication key of a redemption event.

    A single transaction may emit several redemption events for different
    holders or periods, so the transaction hash alone is not sufficient.
    """

    tx_hash: str
    fund_key: str
    period_id: int
    holder: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "fund_key": self.fund_key,
            "period_id": self.period_id,
            "holder": self.holder,
        }


class _RedemptionFields(BaseModel):
    fund_key: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    period_id: int = Field(..., ge=0)

    amount_tokens: int = Field(..., ge=0)
    nav_per_token: int = Field(..., ge=0)
    gross_value: int = Field(..., ge=0)
    penalty_amount: int = Field(..., ge=0)
    liquidity_fee_amount: int = Field(..., ge=0)
    discount_amount: int = Field(..., ge=0)
    net_payout: int = Field(..., ge=0)

    event_timestamp: int = Field(..., ge=0)
    tx_hash: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("holder", "tx_hash")
    @classmethod
    def _lowercase_hex(cls, value: str) -> str:
        # Addresses and hashes arrive checksummed or not depending on the transport.
        return value.lower() if value[:2].lower() == "0x" else value

    @property
    def identity_key(self) -> PayoutIdentity:
        return PayoutIdentity(
            tx_hash=self.tx_hash,
            fund_key=self.fund_key,
            period_id=self.period_id,
            holder=self.holder,
        )


class RedemptionOnChainEvent(_RedemptionFields):
    """Decoded ``RedemptionProcessed`` contract event."""


class PayoutRecord(_RedemptionFields):
    """Canonical persisted form of a processed redemption event."""

    recorded_at: datetime

    @classmethod
    def from_event(cls, event: RedemptionOnChainEvent, recorded_at: datetime) -> PayoutRecord:
        return cls(**event.model_dump(), recorded_at=recorded_at)


DispatchStatus = Literal["pending", "dispatched", "failed"]
