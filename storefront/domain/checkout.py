"""Checkout form types and the local validation gate."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

from storefront.core.constants import (
    DEFAULT_DELIVERY_CITY,
    DEFAULT_DELIVERY_STATE,
    ORDER_TYPE_DELIVERY,
    ORDER_TYPE_PICKUP,
    ORDER_TYPES,
)


def normalize_order_type(order_type: str | None) -> str:
    value = str(order_type or "").strip().lower()
    if value not in ORDER_TYPES:
        raise ValueError(f"Unsupported order type: {order_type!r}")
    return value


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    name: str = ""
    email: str = ""
    phone: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name.strip(), "email": self.email.strip(), "phone": self.phone.strip()}


@dataclass(frozen=True, slots=True)
class DeliveryInfo:
    address: str = ""
    city: str = DEFAULT_DELIVERY_CITY
    state: str = DEFAULT_DELIVERY_STATE
    zip_code: str = ""
    phone: str = ""
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "address": self.address.strip(),
            "city": self.city.strip(),
            "state": self.state.strip(),
            "zipCode": self.zip_code.strip(),
            "phone": self.phone.strip(),
        }
        if self.notes.strip():
            data["deliveryNotes"] = self.notes.strip()
        return data


@dataclass(frozen=True, slots=True)
class CheckoutForm:
    order_type: str = ORDER_TYPE_PICKUP
    customer: CustomerInfo = field(default_factory=CustomerInfo)
    delivery: DeliveryInfo = field(default_factory=DeliveryInfo)

    @property
    def is_delivery(self) -> bool:
        return self.order_type == ORDER_TYPE_DELIVERY


def update_dataclass(instance: Any, changes: dict[str, Any]) -> Any:
    known = {f.name for f in fields(instance)}
    unknown = set(changes) - known
    if unknown:
        raise TypeError(f"Unknown fields for {type(instance).__name__}: {', '.join(sorted(unknown))}")
    return replace(instance, **changes)


def text_changes(changes: dict[str, Any]) -> dict[str, str]:
    return {key: "" if value is None else str(value) for key, value in changes.items()}


@dataclass(frozen=True, slots=True)
class FormValidationResult:
    ok: bool
    error_key: str | None = None
    missing: tuple[str, ...] = ()


def _blank(value: str | None) -> bool:
    return not str(value or "").strip()


def validate_checkout_form(form: CheckoutForm) -> FormValidationResult:
    """Customer name, email and phone are always required; address and zip code
    only for delivery."""
    missing = tuple(
        name for name in ("name", "email", "phone") if _blank(getattr(form.customer, name))
    )
    if missing:
        return FormValidationResult(False, "missing_customer_info", missing)

    if form.is_delivery:
        missing = tuple(
            name for name in ("address", "zip_code") if _blank(getattr(form.delivery, name))
        )
        if missing:
            return FormValidationResult(False, "missing_delivery_info", missing)

    return FormValidationResult(True)
