"""
Semantic test: listener assembled from configuration.

Invariant:
The wired listener persists payouts to the configured payout log and
audit directory, the logging executor reports each payout once, and extra
event sinks receive the same domain events as the bus log.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import pytest

from revenue_settlement.adapters.payout_logging import LoggingPayoutExecutor
from revenue_settlement.core.config.settlement_config import SettlementConfig
from revenue_settlement.core.domain.types import AuditEventType, RedemptionOnChainEvent
from revenue_settlement.core.events.events import DuplicateRedemptionDiscardedEvent, PayoutRecordedEvent
from revenue_settlement.core.events.sinks.recording_sink import RecordingEventSink
from revenue_settlement.listener.event_sources import InMemoryEventSource
from revenue_settlement.runtime.wiring import build_event_bus, build_listener
from revenue_settlement.storage.audit_trail import AuditTrail
from revenue_settlement.storage.payout_ledger import PayoutLedger


def test_wired_listener_records_and_logs_payout(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    config = SettlementConfig.from_json_obj(
        {
            "rpc_url": "ws://localhost:8546",
            "payout_log_file": str(tmp_path / "payout-log.jsonl"),
            "audit_log_dir": str(tmp_path / "audits"),
            "funds": {"IV": {"key": "IV", "name": "FundIV", "total_supply": 10, "contract_address": "0x4"}},
        }
    )
    source = InMemoryEventSource()
    sink = RecordingEventSink()
    listener = build_listener(
        config,
        source=source,
        executor=LoggingPayoutExecutor(),
        event_bus=build_event_bus(sink),
        poll_interval_s=0.02,
    )
    event = RedemptionOnChainEvent(
        fund_key="IV",
        holder="0xh",
        period_id=2,
        amount_tokens=1,
        nav_per_token=10**18,
        gross_value=10**18,
        penalty_amount=0,
        liquidity_fee_amount=0,
        discount_amount=0,
        net_payout=10**18,
        event_timestamp=1_700_000_000,
        tx_hash="0xt",
    )

    listener.start()
    source.publish(event)
    source.publish(event)
    deadline = time.monotonic() + 5.0
    while time.monotonic() < deadline and listener.stats()["IV"].duplicates < 1:
        time.sleep(0.01)
    listener.stop()

    assert listener.stats()["IV"].dispatched == 1
    assert PayoutLedger(config.payout_log_file).status_of(event.identity_key) == "dispatched"

    audit = AuditTrail(config.audit_log_dir)
    types = [e.event_type for p in audit.partitions() for e in audit.read(p)]
    assert types == [AuditEventType.PAYOUT_RECORDED, AuditEventType.PAYOUT_DISPATCHED]

    payout_lines = [r for r in caplog.records if r.getMessage().startswith("Fund IV should pay holder 0xh")]
    assert len(payout_lines) == 1
    assert len(sink.events(PayoutRecordedEvent)) == 1
    assert len(sink.events(DuplicateRedemptionDiscardedEvent)) == 1
    bus_lines = [r for r in caplog.records if r.name == "settlement.bus"]
    assert bus_lines
