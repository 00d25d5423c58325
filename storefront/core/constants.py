"""Fixed business constants for the storefront."""
from __future__ import annotations

from decimal import Decimal

# Miami-Dade sales tax
TAX_RATE = Decimal("0.075")

DELIVERY_FEE = Decimal("4.99")

SPECIAL_INSTRUCTIONS_MAX_LENGTH = 200

CART_STORAGE_KEY = "jealous-fork-cart"

ORDER_TYPE_PICKUP = "pickup"
ORDER_TYPE_DELIVERY = "delivery"
ORDER_TYPES = frozenset({ORDER_TYPE_PICKUP, ORDER_TYPE_DELIVERY})

DEFAULT_DELIVERY_CITY = "Miami"
DEFAULT_DELIVERY_STATE = "FL"

MENU_PATH = "/full-menu"
CONFIRMATION_PATH = "/order-confirmation/{order_id}"
