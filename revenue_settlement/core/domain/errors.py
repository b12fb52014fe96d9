"""Settlement error taxonomy.

Errors raised by the NAV engine, risk adjuster and settlement orchestrator
propagate to the immediate caller unchanged. The CLI reports them and exits
non-zero; the event listener logs them and keeps listening.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import PayoutIdentity


class SettlementError(Exception):
    """Base class for all settlement failures."""


class ConfigError(SettlementError):
    """Startup configuration is missing or invalid."""


class DataValidationError(SettlementError):
    """Upstream revenue or risk data is malformed or missing.

    Fails the computation that needed the data; stored state is untouched.
    """


class ZeroSupplyError(SettlementError):
    """NAV requested for a fund whose token supply is zero."""


class NoDataError(SettlementError):
    """No revenue record exists for the fund."""


class InsufficientWindowError(NoDataError):
    """Revenue records exist but none in the requested window is usable."""


class UnknownFundError(SettlementError):
    """Fund key does not map to a configured fund."""

    def __init__(self, fund_key: str, known: list[str] | None = None) -> None:
        expected = ", ".join(known) if known else "none configured"
        super().__init__(f"Unknown fundKey {fund_key!r}. Expected one of: {expected}.")
        self.fund_key = fund_key


class AuditWriteError(SettlementError):
    """Appending to the audit trail failed."""


class DuplicateEventError(SettlementError):
    """A payout record with the same identity key already exists.

    Never surfaced to operators: the dispatcher treats it as a successful no-op.
    """

    def __init__(self, identity: PayoutIdentity) -> None:
        super().__init__(f"payout already recorded for {identity}")
        self.identity = identity


class DispatchError(SettlementError):
    """Payout execution failed after the payout record was durably stored.

    Eligible for out-of-band retry; must never cause the record to be
    appended again.
    """

    retryable = True

    def __init__(self, identity: PayoutIdentity, reason: str) -> None:
        super().__init__(f"payout dispatch failed for {identity}: {reason}")
        self.identity = identity
        self.reason = reason
