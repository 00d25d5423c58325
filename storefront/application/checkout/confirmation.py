"""Use case: show a recorded order on the confirmation page."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from storefront.core.exceptions import OrderLookupError, OrderNotFoundException
from storefront.core.messages import get_text
from storefront.core.money import format_money, to_cents
from storefront.domain.order import OrderResponse

logger = logging.getLogger(__name__)

HOME_PATH = "/"


def _money(amount: float | None) -> str | None:
    if amount is None:
        return None
    return format_money(to_cents(amount))


@dataclass(frozen=True, slots=True)
class ConfirmationView:
    order_id: str
    status: str
    status_label: str
    total: str
    subtotal: str | None = None
    tax: str | None = None
    delivery_fee: str | None = None
    order_type: str | None = None
    estimated_ready_time: datetime | None = None

    @classmethod
    def from_response(cls, response: OrderResponse) -> ConfirmationView:
        return cls(
            order_id=response.order_id,
            status=response.status,
            status_label=get_text(f"status_{response.status}"),
            total=_money(response.total),
            subtotal=_money(response.subtotal),
            tax=_money(response.tax),
            delivery_fee=_money(response.delivery_fee) if response.delivery_fee else None,
            order_type=response.order_type,
            estimated_ready_time=response.estimated_ready_time,
        )


async def load_confirmation(client, order_id: str, navigator, notifier) -> ConfirmationView | None:
    """Fetch the order for display; on failure tell the user and go home."""
    try:
        response = await client.get_order(order_id)
    except (OrderNotFoundException, OrderLookupError) as exc:
        logger.warning("Confirmation for order %s unavailable: %s", order_id, exc.message)
        notifier(get_text("order_not_found_title"), get_text("order_not_found"), "destructive")
        navigator.go(HOME_PATH)
        return None
    return ConfirmationView.from_response(response)
