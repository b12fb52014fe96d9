"""
In-memory redemption event source.

Implements the RedemptionEventSource protocol on top of per-fund queues.
Used for replaying exported events, for embedding behind a push-based
transport, and in tests. Redelivery is modelled by publishing the same
event again.
"""
from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import RedemptionOnChainEvent


class InMemorySubscription:
    def __init__(self, fund_key: str, contract_address: str) -> None:
        self.fund_key = fund_key
        self.contract_address = contract_address
        self._queue: queue.Queue[RedemptionOnChainEvent] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self, event: RedemptionOnChainEvent) -> None:
        if not self._closed.is_set():
            self._queue.put(event)

    def poll(self, timeout_s: float) -> list[RedemptionOnChainEvent]:
        if self._closed.is_set():
            return []
        try:
            first = self._queue.get(timeout=timeout_s)
        except queue.Empty:
            return []

        events = [first]
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self) -> None:
        self._closed.set()


class InMemoryEventSource:
    """Routes published events to the subscription of their fund."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, InMemorySubscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, *, fund_key: str, contract_address: str) -> InMemorySubscription:
        with self._lock:
            subscription = InMemorySubscription(fund_key, contract_address)
            self._subscriptions[fund_key] = subscription
            return subscription

    def publish(self, event: RedemptionOnChainEvent) -> bool:
        """Deliver ``event``; returns False when nobody listens for its fund."""
        with self._lock:
            subscription = self._subscriptions.get(event.fund_key)
        if subscription is None or subscription.closed:
            return False
        subscription.deliver(event)
        return True

    def subscribed_funds(self) -> list[str]:
        with self._lock:
            return sorted(k for k, s in self._subscriptions.items() if not s.closed)
