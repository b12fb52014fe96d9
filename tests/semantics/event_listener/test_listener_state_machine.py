"""
Semantic test: listener state transitions.

Invariant:
Only the canonical states are ever valid targets, a subscription starts
idle, and both outcomes of processing lead back to idle.
"""

from __future__ import annotations

import pytest

from revenue_settlement.core.domain.listener_state_machine import (
    FAILED,
    IDLE,
    LISTENER_ALLOWED_TRANSITIONS,
    LISTENER_STATES,
    LISTENING,
    PROCESSING,
    RECORDED,
    is_valid_transition,
)


def test_every_allowed_target_is_a_known_state() -> None:
    for prev_state, targets in LISTENER_ALLOWED_TRANSITIONS.items():
        assert prev_state is None or prev_state in LISTENER_STATES
        assert targets <= LISTENER_STATES


@pytest.mark.parametrize(
    ("prev_state", "next_state"),
    [
        (None, IDLE),
        (IDLE, LISTENING),
        (LISTENING, PROCESSING),
        (PROCESSING, RECORDED),
        (PROCESSING, FAILED),
        (RECORDED, IDLE),
        (FAILED, IDLE),
    ],
)
def test_processing_cycle_is_valid(prev_state: str | None, next_state: str) -> None:
    assert is_valid_transition(prev_state, next_state)


@pytest.mark.parametrize(
    ("prev_state", "next_state"),
    [
        (None, LISTENING),
        (IDLE, PROCESSING),
        (RECORDED, FAILED),
        (LISTENING, "paused"),
        ("paused", IDLE),
    ],
)
def test_unknown_or_skipped_transitions_are_rejected(prev_state: str | None, next_state: str) -> None:
    assert not is_valid_transition(prev_state, next_state)
