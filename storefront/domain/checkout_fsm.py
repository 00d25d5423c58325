"""Checkout state transition rules (single source of truth)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


class CheckoutState:
    """Checkout sequencer states."""

    IDLE = "idle"
    COLLECTING_INFO = "collecting_info"
    AWAITING_PAYMENT = "awaiting_payment"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Mapping[str, frozenset[str]] = {
    CheckoutState.IDLE: frozenset({CheckoutState.COLLECTING_INFO}),
    CheckoutState.COLLECTING_INFO: frozenset(
        {
            CheckoutState.AWAITING_PAYMENT,
            CheckoutState.IDLE,
        }
    ),
    CheckoutState.AWAITING_PAYMENT: frozenset(
        {
            CheckoutState.SUBMITTING,
            CheckoutState.FAILED,
            CheckoutState.COLLECTING_INFO,
            CheckoutState.IDLE,
        }
    ),
    CheckoutState.SUBMITTING: frozenset(
        {
            CheckoutState.CONFIRMED,
            CheckoutState.FAILED,
        }
    ),
    CheckoutState.FAILED: frozenset(
        {
            CheckoutState.AWAITING_PAYMENT,
            CheckoutState.SUBMITTING,
        }
    ),
    CheckoutState.CONFIRMED: frozenset(),
}

TERMINAL_STATES = frozenset({CheckoutState.CONFIRMED})

# once a request is in flight a charge may exist, so abandoning is not offered
CANCELLABLE_STATES = frozenset(
    {
        CheckoutState.IDLE,
        CheckoutState.COLLECTING_INFO,
        CheckoutState.AWAITING_PAYMENT,
    }
)


@dataclass(frozen=True, slots=True)
class TransitionValidationResult:
    allowed: bool
    reason: str | None = None


def validate_checkout_transition(current: str, target: str) -> TransitionValidationResult:
    if target not in ALLOWED_TRANSITIONS:
        return TransitionValidationResult(False, f"Unsupported state: {target}")
    if current not in ALLOWED_TRANSITIONS:
        return TransitionValidationResult(False, f"Unsupported current state: {current}")
    if current in TERMINAL_STATES:
        return TransitionValidationResult(False, f"Checkout already finished in '{current}'")
    if target not in ALLOWED_TRANSITIONS[current]:
        return TransitionValidationResult(False, f"Transition '{current} -> {target}' is not allowed")
    return TransitionValidationResult(True)
