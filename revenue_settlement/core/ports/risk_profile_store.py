from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from revenue_settlement.core.domain.types import RiskProfile


class RiskProfileStore(Protocol):
    """Lookup of a business's insurance exposure profile."""

    def lookup(self, business_id: str) -> RiskProfile | None:
        """Return the profile, or None when the business has none.

        Absence is a valid, neutral state and must not raise.
        """
