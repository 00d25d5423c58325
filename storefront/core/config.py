"""Environment-driven configuration objects for the storefront."""
from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv

from storefront.core.constants import CART_STORAGE_KEY, DELIVERY_FEE
from storefront.core.exceptions import ConfigurationException
from storefront.core.money import to_cents

CART_STORE_FILE = "file"
CART_STORE_REDIS = "redis"


def _str_to_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"true", "1", "yes", "y"}


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationException(f"{name} must be a number, got {raw!r}")


@dataclass(slots=True)
class CartStoreConfig:
    backend: str
    path: str
    storage_key: str
    redis_url: str | None


@dataclass(slots=True)
class OrderApiConfig:
    base_url: str
    timeout: float


@dataclass(slots=True)
class Settings:
    environment: str
    log_level: str
    debug: bool
    delivery_fee_cents: int
    cart_store: CartStoreConfig
    order_api: OrderApiConfig
    sentry_dsn: str | None

    @property
    def delivery_fee(self) -> Decimal:
        return Decimal(self.delivery_fee_cents) / 100


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    backend = os.getenv("CART_STORE", CART_STORE_FILE).strip().lower()
    if backend not in (CART_STORE_FILE, CART_STORE_REDIS):
        raise ConfigurationException(f"CART_STORE must be 'file' or 'redis', got {backend!r}")

    try:
        delivery_fee_cents = to_cents(os.getenv("DELIVERY_FEE", str(DELIVERY_FEE)))
    except ValueError as exc:
        raise ConfigurationException(f"DELIVERY_FEE is invalid: {exc}")
    if delivery_fee_cents < 0:
        raise ConfigurationException("DELIVERY_FEE cannot be negative")

    timeout = _float_env("ORDER_API_TIMEOUT", "30")
    if timeout <= 0:
        raise ConfigurationException("ORDER_API_TIMEOUT must be positive")

    cart_store = CartStoreConfig(
        backend=backend,
        path=os.getenv("CART_STORE_PATH", "data/cart"),
        storage_key=os.getenv("CART_STORAGE_KEY", CART_STORAGE_KEY),
        redis_url=os.getenv("REDIS_URL") or None,
    )
    order_api = OrderApiConfig(
        base_url=os.getenv("ORDER_API_URL", "http://localhost:5000").rstrip("/"),
        timeout=timeout,
    )

    return Settings(
        environment=os.getenv("ENVIRONMENT", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        debug=_str_to_bool(os.getenv("DEBUG")),
        delivery_fee_cents=delivery_fee_cents,
        cart_store=cart_store,
        order_api=order_api,
        sentry_dsn=os.getenv("SENTRY_DSN") or None,
    )
