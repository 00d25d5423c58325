"""User-facing checkout texts."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

TEXTS: dict[str, str] = {
    "missing_customer_info_title": "Missing Information",
    "missing_customer_info": "Please fill in all customer information fields.",
    "missing_delivery_info_title": "Missing Delivery Information",
    "missing_delivery_info": "Please provide delivery address and zip code.",
    "payment_error_title": "Payment Error",
    "payment_failed": "Payment processing failed",
    "payment_not_ready": "Payment system not ready",
    "order_placed_title": "Order Placed Successfully!",
    "order_placed": "Your order #{order_id} has been confirmed.",
    "order_failed_title": "Order Failed",
    "order_rejected": "There was an issue processing your order. Your card was not charged. Please try again.",
    "order_outcome_unknown": (
        "We could not confirm your order. Retrying is safe and will not charge you twice."
    ),
    "order_recording_failed": (
        "Your payment went through but we could not record your order. "
        "Please do not pay again; contact us at {phone} with reference {reference}."
    ),
    "order_in_progress": "Your order is already being submitted.",
    "order_not_found_title": "Order Not Found",
    "order_not_found": "Unable to load order details. Please contact us if you need assistance.",
    "status_confirmed": "Confirmed",
    "status_pending": "Pending",
    "status_preparing": "Preparing",
    "status_ready": "Ready",
    "status_completed": "Completed",
    "status_cancelled": "Cancelled",
}

SUPPORT_PHONE = "(305) 699-1430"


def get_text(key: str, **kwargs: object) -> str:
    """Return the text for ``key`` formatted with ``kwargs``, or the key itself."""
    text = TEXTS.get(key, key)
    if kwargs and text != key:
        try:
            return text.format(**kwargs)
        except (KeyError, ValueError) as e:
            logger.warning("Failed to format text %s: %s", key, e)
    return text
