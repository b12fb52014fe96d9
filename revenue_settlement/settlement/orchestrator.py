"""Redemption settlement orchestration.

Combines the fund's NAV, the redemption contract's terms and the insurance
risk adjustment into a finalized SettlementRecord. The orchestrator performs
no persistence; callers append the record to the audit trail.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING, Callable

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import AuditEventType, SettlementRecord

if TYPE_CHECKING:
    from revenue_settlement.core.config.settlement_config import SettlementConfig
    from revenue_settlement.core.domain.types import AuditEvent
    from revenue_settlement.core.nav.nav_engine import NavEngine
    from revenue_settlement.core.ports.risk_profile_store import RiskProfileStore
    from revenue_settlement.core.ports.terms_calculator import RedemptionTermsCalculator
    from revenue_settlement.core.risk.risk_adjuster import RiskAdjuster
    from revenue_settlement.storage.audit_trail import AuditTrail

LOGGER = logging.getLogger(__name__)

SETTLEMENT_ACTOR = "settlement-orchestrator"

_CENT = Decimal("0.01")


class SettlementOrchestrator:
    """Produces one SettlementRecord per redemption request.

    Failures from the NAV engine, the terms calculator and the risk adjuster
    propagate unchanged; there is no partial result.
    """

    def __init__(
        self,
        *,
        config: SettlementConfig,
        nav_engine: NavEngine,
        terms_calculator: RedemptionTermsCalculator,
        risk_adjuster: RiskAdjuster,
        risk_profiles: RiskProfileStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._nav_engine = nav_engine
        self._terms_calculator = terms_calculator
        self._risk_adjuster = risk_adjuster
        self._risk_profiles = risk_profiles
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def settle(self, business_id: str, fund_key: str, token_amount: int) -> SettlementRecord:
        fund = self._config.fund(fund_key)

        if not business_id:
            raise DataValidationError("business_id must be non-empty")
        if isinstance(token_amount, bool) or not isinstance(token_amount, int) or token_amount <= 0:
            raise DataValidationError(f"token_amount must be a positive integer, got {token_amount!r}")

        nav = self._nav_engine.snapshot(fund.key, fund.nav_window_months, fund.total_supply)

        terms = self._terms_calculator.compute_terms(
            fund=fund,
            nav_per_token=nav.nav_per_token,
            token_amount=token_amount,
        )

        adjustment = self._risk_adjuster.compute_adjustment(self._risk_profiles.lookup(business_id))

        # The multiplier applies to the terminal payable only, never to
        # penalty/fee/discount components. Rounded down: never overpay.
        adjusted = (terms.net_payout * adjustment.adjustment_multiplier).quantize(
            _CENT, rounding=ROUND_DOWN
        )

        record = SettlementRecord(
            business_id=business_id,
            fund_key=fund.key,
            fund_name=fund.name,
            nav=nav,
            token_amount=token_amount,
            redemption_terms=terms,
            insurance_adjustment=adjustment,
            adjusted_redemption_value=adjusted,
            timestamp=self._clock(),
        )

        LOGGER.info(
            "Redemption settled",
            extra={
                "business_id": business_id,
                "fund_key": fund.key,
                "token_amount": token_amount,
                "nav_per_token": nav.nav_per_token,
                "adjusted_redemption_value": str(adjusted),
            },
        )
        return record


def record_settlement(record: SettlementRecord, audit: AuditTrail, actor: str = SETTLEMENT_ACTOR) -> AuditEvent:
    """Append a SETTLEMENT_COMPLETED audit event for ``record``."""
    return audit.append(
        actor,
        AuditEventType.SETTLEMENT_COMPLETED,
        record.model_dump(mode="json"),
    )
