"""Integrations package - cart storage, payment widget and the order endpoint client."""

from storefront.integrations.cart_store import (
    CartSnapshot,
    FileCartStore,
    MemoryCartStore,
    RedisCartStore,
    build_cart_store,
)
from storefront.integrations.order_client import OrderSubmissionClient

__all__ = [
    "CartSnapshot",
    "FileCartStore",
    "MemoryCartStore",
    "RedisCartStore",
    "build_cart_store",
    "OrderSubmissionClient",
]
