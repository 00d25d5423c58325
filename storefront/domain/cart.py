"""Cart line types and their persisted dictionary form."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from storefront.core.money import cents_to_amount, to_cents
from storefront.domain.line_key import resolve_line_key

CatalogItemId = str | int


def coerce_quantity(value: Any) -> int:
    """Whole-number quantity from an int, an integral float or numeric text.

    Bools and fractional numbers raise TypeError; anything that is not a
    finite number raises ValueError.
    """
    if isinstance(value, bool):
        raise TypeError("quantity must be a whole number")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"invalid quantity: {value!r}")
    if not number.is_finite():
        raise ValueError(f"invalid quantity: {value!r}")
    if number != number.to_integral_value():
        raise TypeError(f"quantity must be a whole number, got {value!r}")
    return int(number)


@dataclass(frozen=True, slots=True)
class Modifier:
    """Add-on selected for a catalog item, priced per unit."""

    id: str
    name: str
    price_cents: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(cents_to_amount(self.price_cents)),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Modifier:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            price_cents=to_cents(data.get("price", 0)),
        )


@dataclass(frozen=True, slots=True)
class CartItemDraft:
    """Item handed to the cart before it has a line key or quantity."""

    catalog_item_id: CatalogItemId
    name: str
    unit_price_cents: int
    modifiers: tuple[Modifier, ...] = ()
    special_instructions: str | None = None
    description: str | None = None
    category: str | None = None
    in_stock: bool = True


@dataclass(frozen=True, slots=True)
class CartLine:
    """Single line in the cart."""

    catalog_item_id: CatalogItemId
    line_key: str
    name: str
    unit_price_cents: int
    quantity: int = 1
    modifiers: tuple[Modifier, ...] = field(default_factory=tuple)
    special_instructions: str | None = None
    description: str | None = None
    category: str | None = None

    @property
    def modifier_total_cents(self) -> int:
        return sum(mod.price_cents for mod in self.modifiers)

    @property
    def unit_total_cents(self) -> int:
        """Base price plus every modifier, for one unit."""
        return self.unit_price_cents + self.modifier_total_cents

    @property
    def line_total_cents(self) -> int:
        return self.unit_total_cents * self.quantity

    def with_quantity(self, quantity: int) -> CartLine:
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.catalog_item_id,
            "cartLineId": self.line_key,
            "name": self.name,
            "price": float(cents_to_amount(self.unit_price_cents)),
            "quantity": int(self.quantity),
        }
        if self.modifiers:
            data["modifiers"] = [mod.to_dict() for mod in self.modifiers]
        if self.special_instructions:
            data["specialInstructions"] = self.special_instructions
        if self.description:
            data["description"] = self.description
        if self.category:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartLine:
        """Rebuild a line from its persisted form.

        Raises ValueError/KeyError/TypeError for entries that cannot form a
        valid line.
        """
        catalog_item_id = data["id"]
        if catalog_item_id is None or catalog_item_id == "":
            raise ValueError("cart line without id")
        modifiers = tuple(Modifier.from_dict(raw) for raw in (data.get("modifiers") or []))
        quantity = coerce_quantity(data.get("quantity", 1))
        if quantity < 1:
            raise ValueError(f"cart line quantity must be >= 1, got {quantity}")
        line_key = data.get("cartLineId") or resolve_line_key(catalog_item_id, modifiers)
        return cls(
            catalog_item_id=catalog_item_id,
            line_key=str(line_key),
            name=str(data.get("name", "")),
            unit_price_cents=to_cents(data.get("price", 0)),
            quantity=quantity,
            modifiers=modifiers,
            special_instructions=data.get("specialInstructions") or None,
            description=data.get("description") or None,
            category=data.get("category") or None,
        )


def lines_to_dicts(lines: Iterable[CartLine]) -> list[dict[str, Any]]:
    return [line.to_dict() for line in lines]
