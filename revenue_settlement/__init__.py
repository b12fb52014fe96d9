"""Public API for the revenue_settlement package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from revenue_settlement.core.config.settlement_config import (
    FundConfig,
    SettlementConfig,
    TermsScheduleConfig,
)

# ----------------------------------------------------------------------
# Domain types and errors
# ----------------------------------------------------------------------
from revenue_settlement.core.domain.errors import (
    AuditWriteError,
    ConfigError,
    DataValidationError,
    DispatchError,
    DuplicateEventError,
    InsufficientWindowError,
    NoDataError,
    SettlementError,
    UnknownFundError,
    ZeroSupplyError,
)
from revenue_settlement.core.domain.types import (
    AuditEvent,
    AuditEventType,
    InsuranceAdjustment,
    NavSnapshot,
    PayoutIdentity,
    PayoutRecord,
    RedemptionOnChainEvent,
    RedemptionTerms,
    RevenueRecord,
    RiskProfile,
    SettlementRecord,
)

# ----------------------------------------------------------------------
# Settlement core
# ----------------------------------------------------------------------
from revenue_settlement.core.nav.nav_engine import NavEngine
from revenue_settlement.core.risk.risk_adjuster import RiskAdjuster
from revenue_settlement.core.risk.risk_config import RiskAdjustmentConfig
from revenue_settlement.settlement.orchestrator import SettlementOrchestrator, record_settlement

# ----------------------------------------------------------------------
# Storage and event processing
# ----------------------------------------------------------------------
from revenue_settlement.listener.dispatcher import DispatchOutcome, PayoutDispatcher
from revenue_settlement.listener.event_listener import RedemptionEventListener
from revenue_settlement.storage.audit_trail import AuditTrail
from revenue_settlement.storage.payout_ledger import PayoutLedger

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Config
    "SettlementConfig",
    "FundConfig",
    "TermsScheduleConfig",
    "RiskAdjustmentConfig",

    # Domain
    "RevenueRecord",
    "NavSnapshot",
    "RiskProfile",
    "InsuranceAdjustment",
    "RedemptionTerms",
    "SettlementRecord",
    "AuditEvent",
    "AuditEventType",
    "RedemptionOnChainEvent",
    "PayoutIdentity",
    "PayoutRecord",

    # Errors
    "SettlementError",
    "ConfigError",
    "DataValidationError",
    "ZeroSupplyError",
    "NoDataError",
    "InsufficientWindowError",
    "UnknownFundError",
    "AuditWriteError",
    "DuplicateEventError",
    "DispatchError",

    # Components
    "NavEngine",
    "RiskAdjuster",
    "SettlementOrchestrator",
    "record_settlement",
    "AuditTrail",
    "PayoutLedger",
    "PayoutDispatcher",
    "DispatchOutcome",
    "RedemptionEventListener",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("revenue-settlement")
except PackageNotFoundError:
    __version__ = "0.0.0"
