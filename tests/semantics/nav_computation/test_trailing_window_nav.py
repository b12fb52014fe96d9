"""
Semantic test: NAV per token from the trailing revenue window.

Invariant:
nav_per_token = round_half_up_cents(avg(net_revenue) * bps / 10000) * 1e18 / total_supply,
averaged over the most recent records of the window, with the
tokenized percentage taken from the latest record.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import NAV_SCALE, RevenueRecord
from revenue_settlement.core.nav.nav_engine import NavEngine
from revenue_settlement.storage.revenue_store import InMemoryRevenueStore


def _record(period: str, net: str | None, bps: int = 2000, fund_key: str = "I") -> RevenueRecord:
    return RevenueRecord(
        fund_key=fund_key,
        period_label=period,
        net_revenue=Decimal(net) if net is not None else None,
        tokenized_percent_bps=bps,
    )


def test_two_month_average_over_one_million_tokens() -> None:
    store = InMemoryRevenueStore([_record("2024-01", "100000"), _record("2024-02", "120000")])
    engine = NavEngine(store)

    nav = engine.compute_nav("I", 3, 1_000_000)

    # avg 110000 * 20% = 22000 over 1e6 tokens = 0.022 per token.
    assert nav == 22 * NAV_SCALE // 1000


def test_snapshot_reports_partial_window() -> None:
    store = InMemoryRevenueStore([_record("2024-01", "100000"), _record("2024-02", "120000")])
    snapshot = NavEngine(store).snapshot("I", 3, 1_000_000)

    assert snapshot.window_months == 3
    assert snapshot.records_used == 2
    assert snapshot.nav_per_token == 22 * NAV_SCALE // 1000


def test_window_selects_most_recent_periods_only() -> None:
    store = InMemoryRevenueStore(
        [
            _record("2023-10", "999999"),
            _record("2023-11", "100"),
            _record("2023-12", "200"),
            _record("2024-01", "300"),
        ]
    )
    nav = NavEngine(store).compute_nav("I", 3, 1)

    # avg(100, 200, 300) = 200, 20% = 40.00
    assert nav == 40 * NAV_SCALE


def test_missing_revenue_outside_window_is_ignored() -> None:
    store = InMemoryRevenueStore(
        [
            _record("2023-10", None),
            _record("2023-11", "300"),
            _record("2023-12", "200"),
            _record("2024-01", "100"),
        ]
    )
    snapshot = NavEngine(store).snapshot("I", 3, 1)

    assert snapshot.records_used == 3
    assert snapshot.nav_per_token == 40 * NAV_SCALE


def test_missing_revenue_inside_window_is_not_averaged_away() -> None:
    store = InMemoryRevenueStore(
        [
            _record("2023-10", "900"),
            _record("2023-11", "300"),
            _record("2023-12", None),
            _record("2024-01", "100"),
        ]
    )

    with pytest.raises(DataValidationError, match="2023-12"):
        NavEngine(store).snapshot("I", 3, 1)


def test_tokenized_percent_comes_from_latest_record() -> None:
    store = InMemoryRevenueStore(
        [
            _record("2024-01", "1000", bps=1000),
            _record("2024-02", "1000", bps=5000),
        ]
    )
    nav = NavEngine(store).compute_nav("I", 3, 1)

    assert nav == 500 * NAV_SCALE


def test_tokenized_portion_rounds_half_up_to_cents() -> None:
    # 0.125 * 100% -> 0.13
    store = InMemoryRevenueStore([_record("2024-01", "0.125", bps=10_000)])
    nav = NavEngine(store).compute_nav("I", 1, 1)

    assert nav == 13 * NAV_SCALE // 100


def test_per_token_division_floors() -> None:
    store = InMemoryRevenueStore([_record("2024-01", "1", bps=10_000)])
    nav = NavEngine(store).compute_nav("I", 1, 3)

    assert nav == NAV_SCALE // 3


def test_other_funds_records_are_ignored() -> None:
    store = InMemoryRevenueStore(
        [
            _record("2024-01", "1000", fund_key="I"),
            _record("2024-02", "5000000", fund_key="II"),
        ]
    )
    nav = NavEngine(store).compute_nav("I", 3, 1)

    assert nav == 200 * NAV_SCALE


def test_same_inputs_give_same_nav() -> None:
    store = InMemoryRevenueStore(
        [_record("2024-01", "123456.78"), _record("2024-02", "98765.43"), _record("2024-03", "55555.55")]
    )
    engine = NavEngine(store)

    results = {engine.compute_nav("I", 3, 7_777_777) for _ in range(5)}

    assert len(results) == 1
