"""Order request/response types exchanged with the order endpoint."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.core.money import cents_to_amount
from storefront.core.order_math import CartTotals
from storefront.domain.cart import CartLine
from storefront.domain.checkout import CheckoutForm


class OrderStatus:
    """Statuses reported by the order endpoint."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = frozenset({PENDING, CONFIRMED, PREPARING, READY, COMPLETED, CANCELLED})

    @classmethod
    def normalize(cls, status: str | None) -> str:
        value = str(status or "").strip().lower()
        mapping = {
            "open": cls.PENDING,
            "paid": cls.CONFIRMED,
            "in_progress": cls.PREPARING,
            "canceled": cls.CANCELLED,
        }
        value = mapping.get(value, value)
        return value if value in cls.ALL else cls.PENDING


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ModifierPayload(WireModel):
    id: str
    name: str
    price: float = 0.0


class OrderItemPayload(WireModel):
    id: str | int
    cart_line_id: str | None = Field(None, alias="cartLineId")
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    description: str | None = None
    modifiers: list[ModifierPayload] = Field(default_factory=list)
    special_instructions: str | None = Field(None, alias="specialInstructions", max_length=200)


class CustomerInfoPayload(WireModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)


class DeliveryInfoPayload(WireModel):
    address: str = Field(..., min_length=1)
    city: str = ""
    state: str = ""
    zip_code: str = Field(..., alias="zipCode", min_length=1)
    phone: str = ""
    delivery_notes: str | None = Field(None, alias="deliveryNotes")


class OrderRequestPayload(WireModel):
    items: list[OrderItemPayload] = Field(..., min_length=1)
    subtotal: float = Field(..., ge=0)
    tax: float = Field(..., ge=0)
    delivery_fee: float = Field(0.0, alias="deliveryFee", ge=0)
    total: float = Field(..., ge=0)
    customer_info: CustomerInfoPayload = Field(..., alias="customerInfo")
    delivery_info: DeliveryInfoPayload | None = Field(None, alias="deliveryInfo")
    order_type: Literal["pickup", "delivery"] = Field(..., alias="orderType")
    payment_token: str = Field(..., alias="paymentToken", min_length=1)

    @model_validator(mode="after")
    def delivery_info_for_delivery(self) -> OrderRequestPayload:
        if self.order_type == "delivery" and self.delivery_info is None:
            raise ValueError("deliveryInfo is required for delivery orders")
        return self


class OrderResponsePayload(WireModel):
    order_id: str = Field(..., alias="orderId", min_length=1)
    payment_id: str | None = Field(None, alias="paymentId")
    status: str
    estimated_ready_time: datetime | None = Field(None, alias="estimatedReadyTime")
    subtotal: float | None = None
    tax: float | None = None
    delivery_fee: float | None = Field(None, alias="deliveryFee")
    total: float
    order_type: str | None = Field(None, alias="orderType")
    items: list[OrderItemPayload] = Field(default_factory=list)


class ErrorPayload(WireModel):
    error: str = "Order failed"
    charged: bool | None = None
    payment_id: str | None = Field(None, alias="paymentId")
    retry_safe: bool | None = Field(None, alias="retrySafe")


def _amount(cents) -> float:
    return float(cents_to_amount(cents))


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """Everything one submission attempt sends, frozen when submission starts."""

    lines: tuple[CartLine, ...]
    totals: CartTotals
    form: CheckoutForm
    payment_token: str
    idempotency_key: str

    def to_payload(self) -> OrderRequestPayload:
        items = [
            OrderItemPayload(
                id=line.catalog_item_id,
                cart_line_id=line.line_key,
                name=line.name,
                price=_amount(line.unit_price_cents),
                quantity=line.quantity,
                description=line.description,
                modifiers=[
                    ModifierPayload(id=mod.id, name=mod.name, price=_amount(mod.price_cents))
                    for mod in line.modifiers
                ],
                special_instructions=line.special_instructions,
            )
            for line in self.lines
        ]
        delivery = None
        if self.form.is_delivery:
            delivery = DeliveryInfoPayload.model_validate(self.form.delivery.to_dict())
        return OrderRequestPayload(
            items=items,
            subtotal=_amount(self.totals.subtotal_cents),
            tax=_amount(self.totals.tax_cents),
            delivery_fee=_amount(self.totals.delivery_fee_cents),
            total=_amount(self.totals.total_cents),
            customer_info=CustomerInfoPayload.model_validate(self.form.customer.to_dict()),
            delivery_info=delivery,
            order_type=self.form.order_type,
            payment_token=self.payment_token,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.to_payload().model_dump(by_alias=True, exclude_none=True, mode="json")


@dataclass(frozen=True, slots=True)
class OrderResponse:
    order_id: str
    status: str
    total: float
    payment_id: str | None = None
    estimated_ready_time: datetime | None = None
    subtotal: float | None = None
    tax: float | None = None
    delivery_fee: float | None = None
    order_type: str | None = None

    @classmethod
    def from_payload(cls, payload: OrderResponsePayload) -> OrderResponse:
        return cls(
            order_id=payload.order_id,
            status=OrderStatus.normalize(payload.status),
            total=payload.total,
            payment_id=payload.payment_id,
            estimated_ready_time=payload.estimated_ready_time,
            subtotal=payload.subtotal,
            tax=payload.tax,
            delivery_fee=payload.delivery_fee,
            order_type=payload.order_type,
        )
