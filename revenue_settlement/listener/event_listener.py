"""Event listener for on-chain redemption events.

One independent subscription per configured fund. For each fund a receiver
thread polls the transport and pushes events into a bounded queue; a worker
thread pulls from that queue and hands events to the PayoutDispatcher. The
receive path never performs audit or payout I/O, and a full queue blocks the
receiver (backpressure) instead of dropping events.

Invariant:
- Within one fund, events are processed in delivery order by a single worker.
- Different funds are processed concurrently.
- A failing event is logged; the subscription keeps listening.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from revenue_settlement.core.domain.listener_state_machine import (
    FAILED,
    IDLE,
    LISTENING,
    PROCESSING,
    RECORDED,
    is_valid_transition,
)
from revenue_settlement.core.events.events import ListenerStateTransitionEvent
from revenue_settlement.listener.dispatcher import DispatchOutcome

if TYPE_CHECKING:
    from revenue_settlement.core.config.settlement_config import FundConfig, SettlementConfig
    from revenue_settlement.core.domain.types import RedemptionOnChainEvent
    from revenue_settlement.core.events.event_bus import EventBus
    from revenue_settlement.core.ports.event_source import EventSubscription, RedemptionEventSource
    from revenue_settlement.listener.dispatcher import PayoutDispatcher
    from revenue_settlement.runtime.prometheus_metrics import PrometheusMetricsClient

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FundListenerStats:
    received: int = 0
    dispatched: int = 0
    duplicates: int = 0
    failed: int = 0


@dataclass(slots=True)
class _FundChannel:
    """Runtime state of one fund's subscription."""

    fund: FundConfig
    subscription: EventSubscription
    work_queue: queue.Queue
    state: str | None = None
    stats: FundListenerStats = field(default_factory=FundListenerStats)
    receiver: threading.Thread | None = None
    worker: threading.Thread | None = None
    # Set once the receiver has exited; nothing is enqueued afterwards.
    drained: threading.Event = field(default_factory=threading.Event)


class RedemptionEventListener:
    """Long-lived listener turning redemption events into payout records."""

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        *,
        config: SettlementConfig,
        source: RedemptionEventSource,
        dispatcher: PayoutDispatcher,
        event_bus: EventBus,
        metrics: PrometheusMetricsClient | None = None,
        poll_interval_s: float = 0.5,
    ) -> None:
        self._config = config
        self._source = source
        self._dispatcher = dispatcher
        self._event_bus = event_bus
        self._metrics = metrics
        self._poll_interval_s = poll_interval_s

        self._channels: dict[str, _FundChannel] = {}
        self._stopping = threading.Event()
        self._abandon = threading.Event()
        self._lock = threading.Lock()
        self._live_workers = 0
        self._started = False
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to every fund that has a contract address."""
        if self._started:
            raise RuntimeError("listener already started")
        self._started = True

        for fund in self._config.subscribed_funds():
            subscription = self._source.subscribe(
                fund_key=fund.key,
                contract_address=fund.contract_address,
            )
            channel = _FundChannel(
                fund=fund,
                subscription=subscription,
                work_queue=queue.Queue(maxsize=self._config.event_queue_maxsize),
            )
            self._channels[fund.key] = channel
            self._transition(channel, IDLE)

            channel.worker = threading.Thread(
                target=self._work,
                args=(channel,),
                name=f"redemption-worker-{fund.key}",
                daemon=True,
            )
            channel.receiver = threading.Thread(
                target=self._receive,
                args=(channel,),
                name=f"redemption-receiver-{fund.key}",
                daemon=True,
            )
            self._transition(channel, LISTENING)
            with self._lock:
                self._live_workers += 1
            channel.worker.start()
            channel.receiver.start()

            LOGGER.info(
                "Listening for RedemptionProcessed",
                extra={"fund_key": fund.key, "contract_address": fund.contract_address},
            )

        skipped = sorted(set(self._config.funds) - set(self._channels))
        if skipped:
            LOGGER.info("Funds without contract address not subscribed", extra={"funds": skipped})

    def stop(self, timeout_s: float | None = None) -> None:
        """Stop accepting events and let queued and in-flight events finish.

        With ``timeout_s`` the whole shutdown is bounded by that deadline.
        Workers still busy once it passes finish their in-flight event and
        exit without taking further queued events; those stay unacknowledged
        and are left for redelivery. The payout dispatcher is closed by the
        last worker to exit, never underneath a running one.
        """
        if not self._started or self._stopped:
            return
        self._stopped = True
        self._stopping.set()
        deadline = None if timeout_s is None else time.monotonic() + timeout_s

        for channel in self._channels.values():
            if channel.receiver is not None:
                channel.receiver.join(_remaining(deadline))
            channel.subscription.close()
            channel.drained.set()

        for channel in self._channels.values():
            if channel.worker is not None:
                channel.worker.join(_remaining(deadline))

        busy = sorted(
            key for key, channel in self._channels.items()
            if channel.worker is not None and channel.worker.is_alive()
        )
        if busy:
            self._abandon.set()
            LOGGER.warning(
                "Workers still busy after shutdown timeout, queued events left for redelivery",
                extra={"funds": busy},
            )
        if not self._channels:
            self._dispatcher.close()

        self._push_metrics()
        LOGGER.info("Redemption listener stopped")

    def __enter__(self) -> RedemptionEventListener:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def state_of(self, fund_key: str) -> str | None:
        channel = self._channels.get(fund_key)
        return channel.state if channel is not None else None

    def stats(self) -> dict[str, FundListenerStats]:
        return {key: channel.stats for key, channel in self._channels.items()}

    # ------------------------------------------------------------------
    # Receive path
    # ------------------------------------------------------------------

    def _receive(self, channel: _FundChannel) -> None:
        fund_key = channel.fund.key
        while not self._stopping.is_set():
            try:
                events = channel.subscription.poll(self._poll_interval_s)
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Polling redemption events failed", extra={"fund_key": fund_key})
                self._stopping.wait(self._poll_interval_s)
                continue

            for event in events:
                if event.fund_key != fund_key:
                    LOGGER.warning(
                        "Event for another fund ignored",
                        extra={"fund_key": fund_key, "event_fund_key": event.fund_key},
                    )
                    continue
                if not self._enqueue(channel, event):
                    break

    def _enqueue(self, channel: _FundChannel, event: RedemptionOnChainEvent) -> bool:
        """Block until the worker has room; give up only on shutdown."""
        while True:
            try:
                channel.work_queue.put(event, timeout=self._poll_interval_s)
                channel.stats.received += 1
                return True
            except queue.Full:
                if self._stopping.is_set():
                    LOGGER.warning(
                        "Shutdown with full queue, event left for redelivery",
                        extra={"fund_key": channel.fund.key, "identity": event.identity_key.as_dict()},
                    )
                    return False

    # ------------------------------------------------------------------
    # Processing path
    # ------------------------------------------------------------------

    def _work(self, channel: _FundChannel) -> None:
        try:
            while not self._abandon.is_set():
                try:
                    event = channel.work_queue.get(timeout=self._poll_interval_s)
                except queue.Empty:
                    if channel.drained.is_set() and channel.work_queue.empty():
                        break
                    continue
                self._process(channel, event)

            left = channel.work_queue.qsize()
            if left:
                LOGGER.warning(
                    "Worker exiting with queued events",
                    extra={"fund_key": channel.fund.key, "events_left": left},
                )
            if channel.state != IDLE:
                self._transition(channel, IDLE)
        finally:
            self._release_worker()

    def _release_worker(self) -> None:
        with self._lock:
            self._live_workers -= 1
            last = self._live_workers == 0
        if last:
            self._dispatcher.close()
            LOGGER.debug("Payout dispatcher closed")

    def _process(self, channel: _FundChannel, event: RedemptionOnChainEvent) -> None:
        self._transition(channel, PROCESSING)
        try:
            result = self._dispatcher.handle(event)
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception(
                "Redemption event processing failed",
                extra={"fund_key": channel.fund.key, "identity": event.identity_key.as_dict()},
            )
            channel.stats.failed += 1
            self._transition(channel, FAILED)
        else:
            if result.outcome == DispatchOutcome.DUPLICATE:
                channel.stats.duplicates += 1
            elif result.outcome == DispatchOutcome.DISPATCHED:
                channel.stats.dispatched += 1
                self._transition(channel, RECORDED)
            else:
                # Record is stored; only the payout failed. Left for reconciliation.
                channel.stats.failed += 1
                self._transition(channel, FAILED)

        self._transition(channel, IDLE)
        self._transition(channel, LISTENING)

    def _transition(self, channel: _FundChannel, next_state: str) -> None:
        prev_state = channel.state
        if not is_valid_transition(prev_state, next_state):
            LOGGER.warning(
                "Unexpected listener state transition",
                extra={"fund_key": channel.fund.key, "prev_state": prev_state, "next_state": next_state},
            )
        channel.state = next_state
        self._event_bus.emit(
            ListenerStateTransitionEvent(
                ts=time.time(),
                fund_key=channel.fund.key,
                prev_state=prev_state,
                next_state=next_state,
            )
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def _push_metrics(self) -> None:
        if self._metrics is None or not self._metrics.is_enabled():
            return
        try:
            for key, channel in self._channels.items():
                labels = {"fund_key": key}
                self._metrics.push_gauge(
                    name="settlement_listener_events_received",
                    value=float(channel.stats.received),
                    labels=labels,
                )
                self._metrics.push_gauge(
                    name="settlement_listener_payouts_dispatched",
                    value=float(channel.stats.dispatched),
                    labels=labels,
                )
                self._metrics.push_gauge(
                    name="settlement_listener_duplicates_discarded",
                    value=float(channel.stats.duplicates),
                    labels=labels,
                )
                self._metrics.push_gauge(
                    name="settlement_listener_events_failed",
                    value=float(channel.stats.failed),
                    labels=labels,
                )
            self._metrics.push_all(job="settlement_listener")
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Prometheus push failed")


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())
