"""Component wiring from a SettlementConfig.

Every component receives the configuration explicitly; this module is the
only place that maps configuration fields onto concrete stores.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from revenue_settlement.adapters.terms_schedule import BpsTermsSchedule
from revenue_settlement.core.events.event_bus import EventBus
from revenue_settlement.core.events.sinks.sink_logging import LoggingEventSink
from revenue_settlement.core.nav.nav_engine import NavEngine
from revenue_settlement.core.risk.risk_adjuster import RiskAdjuster
from revenue_settlement.listener.dispatcher import PayoutDispatcher
from revenue_settlement.listener.event_listener import RedemptionEventListener
from revenue_settlement.runtime.prometheus_metrics import PrometheusMetricsClient
from revenue_settlement.settlement.orchestrator import SettlementOrchestrator
from revenue_settlement.storage.audit_trail import AuditTrail
from revenue_settlement.storage.payout_ledger import PayoutLedger
from revenue_settlement.storage.revenue_store import FileRevenueStore
from revenue_settlement.storage.risk_profiles import FileRiskProfileStore

if TYPE_CHECKING:
    from revenue_settlement.core.config.settlement_config import SettlementConfig
    from revenue_settlement.core.events.event_sink import EventSink
    from revenue_settlement.core.ports.event_source import RedemptionEventSource
    from revenue_settlement.core.ports.payout_executor import PayoutExecutor
    from revenue_settlement.core.ports.terms_calculator import RedemptionTermsCalculator


def build_event_bus(*extra_sinks: EventSink) -> EventBus:
    """Event bus logging every domain event, plus any caller-supplied sinks."""
    bus = EventBus(sinks=[LoggingEventSink(logging.getLogger("settlement.bus"))])
    for sink in extra_sinks:
        bus.register(sink)
    return bus


def build_orchestrator(
    config: SettlementConfig,
    terms_calculator: RedemptionTermsCalculator | None = None,
) -> SettlementOrchestrator:
    return SettlementOrchestrator(
        config=config,
        nav_engine=NavEngine(FileRevenueStore(config.revenue_data_dir)),
        terms_calculator=terms_calculator or BpsTermsSchedule(),
        risk_adjuster=RiskAdjuster(),
        risk_profiles=FileRiskProfileStore(config.risk_profile_dir),
    )


def build_listener(
    config: SettlementConfig,
    *,
    source: RedemptionEventSource,
    executor: PayoutExecutor,
    event_bus: EventBus | None = None,
    poll_interval_s: float = 0.5,
) -> RedemptionEventListener:
    bus = event_bus or build_event_bus()
    dispatcher = PayoutDispatcher(
        ledger=PayoutLedger(config.payout_log_file),
        audit=AuditTrail(config.audit_log_dir),
        executor=executor,
        event_bus=bus,
        timeout_seconds=config.payout_timeout_seconds,
    )
    return RedemptionEventListener(
        config=config,
        source=source,
        dispatcher=dispatcher,
        event_bus=bus,
        metrics=PrometheusMetricsClient(config.pushgateway_url, config.pushgateway_grouping_key),
        poll_interval_s=poll_interval_s,
    )
