"""Redemption event source protocol.

This module defines the transport-facing boundary used by the event listener.
Concrete implementations adapt a blockchain RPC subscription (or a replay
feed) to this protocol. The transport may redeliver events.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import RedemptionOnChainEvent


class EventSubscription(Protocol):
    """A live subscription to one fund's ``RedemptionProcessed`` events."""

    def poll(self, timeout_s: float) -> list[RedemptionOnChainEvent]:
        """Block up to ``timeout_s`` and return the events received, in delivery order."""

    def close(self) -> None:
        """Release the subscription. Further polls return nothing."""


class RedemptionEventSource(Protocol):
    def subscribe(self, *, fund_key: str, contract_address: str) -> EventSubscription:
        """Open a subscription for the fund's redemption contract."""
