"""
Per-fund listener lifecycle state machine definitions.

This module defines the canonical subscription states and the allowed
transitions between them. It is intentionally passive and validation-only:
the listener consults it before emitting a transition event and logs
(rather than raises) when a transition is unexpected.
"""

from __future__ import annotations

IDLE = "idle"
LISTENING = "listening"
PROCESSING = "processing"
RECORDED = "recorded"
FAILED = "failed"

LISTENER_STATES: frozenset[str] = frozenset(
    {
        IDLE,
        LISTENING,
        PROCESSING,
        RECORDED,
        FAILED,
    }
)


# Allowed listener state transitions.
#
# Key   : previous state (or None if the subscription was never started)
# Value : set of allowed next states
#
# Notes:
# - A duplicate delivery is a successful no-op and returns straight to idle.
# - Failed events are not retried here; retry belongs to reconciliation.
LISTENER_ALLOWED_TRANSITIONS: dict[str | None, frozenset[str]] = {
    None: frozenset({IDLE}),

    IDLE: frozenset(
        {
            LISTENING,
        }
    ),

    LISTENING: frozenset(
        {
            PROCESSING,
            IDLE,
        }
    ),

    PROCESSING: frozenset(
        {
            RECORDED,
            FAILED,
            IDLE,
        }
    ),

    RECORDED: frozenset({IDLE}),

    FAILED: frozenset({IDLE}),
}


def is_valid_transition(prev_state: str | None, next_state: str) -> bool:
    """Return True if the transition prev_state -> next_state is allowed."""
    if next_state not in LISTENER_STATES:
        return False
    allowed = LISTENER_ALLOWED_TRANSITIONS.get(prev_state)
    if allowed is None:
        return False
    return next_state in allowed
