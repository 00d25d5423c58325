"""Checkout use cases."""

from .confirmation import ConfirmationView, load_confirmation
from .sequencer import CheckoutSequencer

__all__ = ["CheckoutSequencer", "ConfirmationView", "load_confirmation"]
