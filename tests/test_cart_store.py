from __future__ import annotations

import json
from dataclasses import dataclass, field

import pytest

from storefront.core.config import CART_STORE_FILE, CART_STORE_REDIS, CartStoreConfig
from storefront.core.constants import CART_STORAGE_KEY
from storefront.core.exceptions import PersistenceError
from storefront.domain.cart import CartLine, Modifier
from storefront.integrations.cart_store import (
    CartSnapshot,
    FileCartStore,
    RedisCartStore,
    build_cart_store,
    parse_snapshot,
)
from storefront.services.cart_service import CartService


def _snapshot() -> CartSnapshot:
    line = CartLine(
        catalog_item_id="burger",
        line_key="burger::mod-cheese",
        name="Burger",
        unit_price_cents=1299,
        quantity=2,
        modifiers=(Modifier("mod-cheese", "Extra cheese", 150),),
        special_instructions="no onions",
    )
    return CartSnapshot(lines=(line,), delivery_fee_cents=499)


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    expiry: dict[str, int] = field(default_factory=dict)
    fail: bool = False

    def ping(self) -> bool:
        return True

    def get(self, key: str):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value
        self.expiry[key] = ttl
        return True


@pytest.fixture
def fake_redis(monkeypatch):
    import storefront.integrations.cart_store as cart_store_module

    client = FakeRedisClient()
    monkeypatch.setattr(cart_store_module.redis, "from_url", lambda *args, **kwargs: client)
    return client


def test_snapshot_wire_shape() -> None:
    payload = _snapshot().to_payload()

    assert payload["deliveryFee"] == 4.99
    assert payload["items"] == [
        {
            "id": "burger",
            "cartLineId": "burger::mod-cheese",
            "name": "Burger",
            "price": 12.99,
            "quantity": 2,
            "modifiers": [{"id": "mod-cheese", "name": "Extra cheese", "price": 1.5}],
            "specialInstructions": "no onions",
        }
    ]


def test_corrupt_snapshot_reads_as_empty() -> None:
    assert parse_snapshot("{not json") is None
    assert parse_snapshot("[1, 2]") is None
    assert parse_snapshot(None) is None


def test_invalid_lines_are_dropped() -> None:
    raw = json.dumps(
        {
            "items": [
                {"id": "burger", "name": "Burger", "price": 10, "quantity": 1},
                {"id": "", "name": "Nothing", "price": 1, "quantity": 1},
                {"id": "fries", "name": "Fries", "price": 3, "quantity": 0},
                {"id": "burger", "name": "Burger again", "price": 10, "quantity": 1},
            ],
            "deliveryFee": "oops",
        }
    )
    snapshot = parse_snapshot(raw)

    assert [line.line_key for line in snapshot.lines] == ["burger"]
    assert snapshot.delivery_fee_cents == 0


def test_missing_line_key_is_recomputed() -> None:
    raw = json.dumps(
        {
            "items": [
                {
                    "id": "burger",
                    "name": "Burger",
                    "price": 10,
                    "quantity": 1,
                    "modifiers": [{"id": "b", "name": "B"}, {"id": "a", "name": "A"}],
                }
            ]
        }
    )
    assert parse_snapshot(raw).lines[0].line_key == "burger::a|b"


def test_file_store_round_trip(tmp_path) -> None:
    store = FileCartStore(tmp_path / "carts")
    assert store.load_snapshot("jealous-fork-cart") is None

    store.save_snapshot("jealous-fork-cart", _snapshot())

    assert (tmp_path / "carts" / "jealous-fork-cart.json").exists()
    assert store.load_snapshot("jealous-fork-cart") == _snapshot()


def test_file_store_sanitizes_key(tmp_path) -> None:
    store = FileCartStore(tmp_path)
    store.save_snapshot("../evil/key", _snapshot())

    assert sorted(p.name for p in tmp_path.iterdir()) == [".._evil_key.json"]


def test_file_store_write_failure_raises_persistence_error(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = FileCartStore(blocker)

    with pytest.raises(PersistenceError):
        store.save_snapshot("cart", _snapshot())


def test_redis_store_uses_ttl(fake_redis) -> None:
    store = RedisCartStore(redis_url="redis://fake")
    store.save_snapshot("jealous-fork-cart", _snapshot())

    assert fake_redis.expiry["cart:jealous-fork-cart"] == RedisCartStore.CART_EXPIRY_SECONDS
    assert RedisCartStore(redis_url="redis://fake").load_snapshot("jealous-fork-cart") == _snapshot()


def test_redis_store_falls_back_to_memory(fake_redis) -> None:
    store = RedisCartStore(redis_url="redis://fake")
    fake_redis.fail = True

    store.save_snapshot("cart", _snapshot())

    assert store.using_memory is True
    assert store.load_snapshot("cart") == _snapshot()


def test_redis_store_without_url_uses_memory(monkeypatch) -> None:
    monkeypatch.delenv("REDIS_URL", raising=False)
    store = RedisCartStore(redis_url=None)

    assert store.using_memory is True
    assert store.load_snapshot("cart") is None


def test_build_cart_store_picks_backend(tmp_path, fake_redis) -> None:
    file_config = CartStoreConfig(backend=CART_STORE_FILE, path=str(tmp_path), storage_key="k", redis_url=None)
    redis_config = CartStoreConfig(backend=CART_STORE_REDIS, path="", storage_key="k", redis_url="redis://fake")

    assert isinstance(build_cart_store(file_config), FileCartStore)
    assert isinstance(build_cart_store(redis_config), RedisCartStore)


def test_undecodable_file_reads_as_empty_cart(tmp_path) -> None:
    (tmp_path / f"{CART_STORAGE_KEY}.json").write_bytes(b'{"items": [], "deliveryFee": "\xff\xfe"}')
    store = FileCartStore(tmp_path)

    assert store.load_snapshot(CART_STORAGE_KEY) is None

    cart = CartService(store=store)
    assert cart.is_empty
    assert cart.persistent is True


def test_non_finite_and_fractional_quantities_drop_the_line(tmp_path) -> None:
    raw = (
        '{"items": ['
        '{"id": "a", "name": "A", "price": 1, "quantity": 1e999},'
        '{"id": "b", "name": "B", "price": 1, "quantity": 1.5},'
        '{"id": "c", "name": "C", "price": 1, "quantity": 2}'
        '], "deliveryFee": 0}'
    )
    (tmp_path / f"{CART_STORAGE_KEY}.json").write_text(raw, encoding="utf-8")

    cart = CartService(store=FileCartStore(tmp_path))

    assert [(line.line_key, line.quantity) for line in cart.lines] == [("c", 2)]
