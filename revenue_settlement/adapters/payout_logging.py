"""
Logging payout executor.

Records payout intent only; real money movement (stablecoin or bank
transfers, internal ledger postings) is integrated behind the same protocol.
"""
from __future__ import annotations

import logging

from revenue_settlement.core.domain.types import PayoutRecord

LOGGER = logging.getLogger(__name__)


class LoggingPayoutExecutor:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def execute(self, record: PayoutRecord) -> None:
        self._logger.info(
            "Fund %s should pay holder %s amount %s for period %s (tx: %s)",
            record.fund_key,
            record.holder,
            record.net_payout,
            record.period_id,
            record.tx_hash,
            extra={"identity": record.identity_key.as_dict()},
        )
