"""Business services orchestrating domain logic."""

from .cart_service import CartService, CartState

__all__ = [
    "CartService",
    "CartState",
]
