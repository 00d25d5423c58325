"""Shared pytest fixtures and fakes for cart and checkout tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest

from storefront.core.exceptions import OrderNotFoundException, OrderSubmissionError
from storefront.domain.cart import CartItemDraft, Modifier
from storefront.domain.order import OrderRequest, OrderResponse
from storefront.integrations.cart_store import MemoryCartStore
from storefront.services.cart_service import CartService

CHEESE = Modifier(id="mod-cheese", name="Extra cheese", price_cents=150)
BACON = Modifier(id="mod-bacon", name="Bacon", price_cents=200)


def make_draft(
    item_id: str = "burger",
    price_cents: int = 1000,
    modifiers: tuple[Modifier, ...] = (),
    **kwargs,
) -> CartItemDraft:
    return CartItemDraft(
        catalog_item_id=item_id,
        name=kwargs.pop("name", item_id.title()),
        unit_price_cents=price_cents,
        modifiers=modifiers,
        **kwargs,
    )


@dataclass
class RecordingNavigator:
    paths: list[str] = field(default_factory=list)

    def go(self, path: str) -> None:
        self.paths.append(path)


@dataclass
class RecordingNotifier:
    messages: list[tuple[str, str, str]] = field(default_factory=list)

    def __call__(self, title: str, description: str, variant: str = "default") -> None:
        self.messages.append((title, description, variant))

    @property
    def titles(self) -> list[str]:
        return [title for title, _, _ in self.messages]


@dataclass
class FakeOrderClient:
    """Answers submissions from a queue of responses or exceptions."""

    outcomes: list[object] = field(default_factory=list)
    requests: list[OrderRequest] = field(default_factory=list)
    orders: dict[str, OrderResponse] = field(default_factory=dict)
    on_submit: object = None

    async def submit_order(self, request: OrderRequest) -> OrderResponse:
        self.requests.append(request)
        if self.on_submit is not None:
            await self.on_submit(request)
        outcome = self.outcomes.pop(0) if self.outcomes else make_response()
        if isinstance(outcome, OrderSubmissionError):
            raise outcome
        return outcome

    async def get_order(self, order_id: str) -> OrderResponse:
        if order_id not in self.orders:
            raise OrderNotFoundException(order_id)
        return self.orders[order_id]


@dataclass
class FakeTokenizer:
    result: dict | None = None
    error: Exception | None = None
    calls: int = 0

    async def tokenize(self) -> dict:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result if self.result is not None else {"status": "OK", "token": "cnon:card-nonce-ok"}


def make_response(order_id: str = "JF-1001", total: float = 11.83, status: str = "confirmed") -> OrderResponse:
    return OrderResponse(
        order_id=order_id,
        status=status,
        total=total,
        payment_id="pay_123",
        estimated_ready_time=datetime(2026, 1, 1, 12, 30, tzinfo=timezone.utc),
        subtotal=11.0,
        tax=0.83,
        delivery_fee=0.0,
        order_type="pickup",
    )


@pytest.fixture
def memory_store() -> MemoryCartStore:
    return MemoryCartStore()


@pytest.fixture
def cart(memory_store) -> CartService:
    return CartService(store=memory_store)


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def order_client() -> FakeOrderClient:
    return FakeOrderClient()
