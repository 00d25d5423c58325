"""Durable cart snapshot storage: local JSON files or Redis with TTL."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import redis

from storefront.core.config import CART_STORE_REDIS, CartStoreConfig
from storefront.core.exceptions import PersistenceError
from storefront.core.money import cents_to_amount, to_cents
from storefront.domain.cart import CartLine, lines_to_dicts

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """What survives a reload: the lines and the delivery fee, nothing derived."""

    lines: tuple[CartLine, ...] = ()
    delivery_fee_cents: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "items": lines_to_dicts(self.lines),
            "deliveryFee": float(cents_to_amount(self.delivery_fee_cents)),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)


def parse_snapshot(raw: str | bytes | None) -> CartSnapshot | None:
    """Decode a stored snapshot.

    Returns None for missing or corrupt data so callers start with an empty
    cart. Individual malformed lines are dropped.
    """
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.warning("Discarding corrupt cart snapshot: %s", exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("Discarding cart snapshot with unexpected shape: %s", type(payload).__name__)
        return None

    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        raw_items = []

    lines: list[CartLine] = []
    seen: set[str] = set()
    for raw_item in raw_items:
        if not isinstance(raw_item, dict):
            continue
        try:
            line = CartLine.from_dict(raw_item)
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Skipping invalid cart line %r: %s", raw_item, exc)
            continue
        if line.line_key in seen:
            logger.warning("Skipping duplicate cart line %s", line.line_key)
            continue
        seen.add(line.line_key)
        lines.append(line)

    try:
        fee_cents = max(0, to_cents(payload.get("deliveryFee") or 0))
    except ValueError:
        fee_cents = 0
    return CartSnapshot(lines=tuple(lines), delivery_fee_cents=fee_cents)


class CartStore(Protocol):
    def load_snapshot(self, key: str) -> CartSnapshot | None: ...

    def save_snapshot(self, key: str, snapshot: CartSnapshot) -> None: ...


class MemoryCartStore:
    """Process-local store, used in tests and as the Redis fallback."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load_snapshot(self, key: str) -> CartSnapshot | None:
        return parse_snapshot(self._data.get(key))

    def save_snapshot(self, key: str, snapshot: CartSnapshot) -> None:
        self._data[key] = snapshot.to_json()

    def raw(self, key: str) -> str | None:
        return self._data.get(key)


class FileCartStore:
    """One JSON file per storage key, replaced atomically on every write."""

    def __init__(self, directory: str | os.PathLike[str]):
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self._directory / f"{safe}.json"

    def load_snapshot(self, key: str) -> CartSnapshot | None:
        path = self._path(key)
        try:
            # bytes: undecodable content is handled by parse_snapshot as corrupt
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Cannot read cart snapshot {path}: {exc}")
        return parse_snapshot(raw)

    def save_snapshot(self, key: str, snapshot: CartSnapshot) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".cart-", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(snapshot.to_json())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise PersistenceError(f"Cannot write cart snapshot {path}: {exc}")


class RedisCartStore:
    """Cart snapshots persisted in Redis with a 24h TTL.

    Falls back to process memory when REDIS_URL is unset or Redis stops
    answering.
    """

    CART_EXPIRY_SECONDS = 24 * 60 * 60

    def __init__(self, redis_url: str | None = None):
        self._redis_url = redis_url or os.getenv("REDIS_URL")
        self._memory = MemoryCartStore()
        self._memory_last_access: dict[str, float] = {}
        self._client = self._init_client()

    @property
    def using_memory(self) -> bool:
        return self._client is None

    def _init_client(self):
        if not self._redis_url:
            logger.warning("REDIS_URL is not set; cart uses in-memory fallback")
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            logger.info("Redis cart storage enabled")
            return client
        except Exception as exc:
            logger.warning("Redis cart init failed, fallback to in-memory: %s", exc)
            return None

    def _switch_to_memory_fallback(self, reason: Exception | str) -> None:
        logger.warning("Redis cart fallback to memory mode: %s", reason)
        self._client = None

    @staticmethod
    def _cart_key(key: str) -> str:
        return f"cart:{key}"

    def _cleanup_memory_expired(self) -> None:
        now = time.time()
        expired = [
            key
            for key, last_access in self._memory_last_access.items()
            if now - last_access > self.CART_EXPIRY_SECONDS
        ]
        for key in expired:
            self._memory_last_access.pop(key, None)
            self._memory.save_snapshot(key, CartSnapshot())

    def _memory_load(self, key: str) -> CartSnapshot | None:
        self._cleanup_memory_expired()
        self._memory_last_access[key] = time.time()
        return self._memory.load_snapshot(key)

    def _memory_save(self, key: str, snapshot: CartSnapshot) -> None:
        self._memory_last_access[key] = time.time()
        self._memory.save_snapshot(key, snapshot)

    def load_snapshot(self, key: str) -> CartSnapshot | None:
        if not self._client:
            return self._memory_load(key)
        try:
            raw = self._client.get(self._cart_key(key))
        except Exception as exc:
            self._switch_to_memory_fallback(exc)
            return self._memory_load(key)
        return parse_snapshot(raw)

    def save_snapshot(self, key: str, snapshot: CartSnapshot) -> None:
        if self._client:
            try:
                self._client.setex(self._cart_key(key), self.CART_EXPIRY_SECONDS, snapshot.to_json())
                return
            except Exception as exc:
                self._switch_to_memory_fallback(exc)
        self._memory_save(key, snapshot)


def build_cart_store(config: CartStoreConfig) -> CartStore:
    if config.backend == CART_STORE_REDIS:
        return RedisCartStore(redis_url=config.redis_url)
    return FileCartStore(config.path)
