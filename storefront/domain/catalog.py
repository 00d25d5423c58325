"""Catalog item types as returned by the menu provider."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from storefront.core.money import to_cents
from storefront.domain.cart import CartItemDraft, Modifier


class SelectionType:
    """How many modifiers of one list a customer may pick."""

    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"

    @classmethod
    def normalize(cls, value: str | None) -> str:
        return cls.SINGLE if str(value or "").strip().upper() == cls.SINGLE else cls.MULTIPLE


@dataclass(frozen=True, slots=True)
class ModifierList:
    id: str
    name: str
    selection_type: str
    modifiers: tuple[Modifier, ...]

    def contains(self, modifier_id: str) -> bool:
        return any(mod.id == modifier_id for mod in self.modifiers)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModifierList:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            selection_type=SelectionType.normalize(data.get("selectionType")),
            modifiers=tuple(Modifier.from_dict(raw) for raw in data.get("modifiers") or []),
        )


@dataclass(frozen=True, slots=True)
class CatalogItem:
    """Purchasable menu entry: ``{id, name, price, category, inStock, modifierLists?}``."""

    id: str | int
    name: str
    price_cents: int
    category: str | None = None
    in_stock: bool = True
    description: str | None = None
    modifier_lists: tuple[ModifierList, ...] = ()

    @property
    def has_modifiers(self) -> bool:
        return bool(self.modifier_lists)

    def to_draft(
        self,
        modifiers: Iterable[Modifier] = (),
        special_instructions: str | None = None,
    ) -> CartItemDraft:
        return CartItemDraft(
            catalog_item_id=self.id,
            name=self.name,
            unit_price_cents=self.price_cents,
            modifiers=tuple(modifiers),
            special_instructions=special_instructions,
            description=self.description,
            category=self.category,
            in_stock=self.in_stock,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogItem:
        return cls(
            id=data["id"],
            name=str(data.get("name", "")),
            price_cents=to_cents(data.get("price", 0)),
            category=data.get("category"),
            in_stock=bool(data.get("inStock", True)),
            description=data.get("description"),
            modifier_lists=tuple(
                ModifierList.from_dict(raw) for raw in data.get("modifierLists") or []
            ),
        )


def toggle_modifier(
    selected: Iterable[Modifier],
    modifier_list: ModifierList,
    modifier: Modifier,
    checked: bool,
) -> tuple[Modifier, ...]:
    """Apply a checkbox change in the customization dialog.

    A SINGLE list keeps at most one of its modifiers selected; a MULTIPLE list
    adds or drops just the toggled one.
    """
    current = list(selected)
    if modifier_list.selection_type == SelectionType.SINGLE:
        kept = [mod for mod in current if not modifier_list.contains(mod.id)]
        return tuple(kept + [modifier]) if checked else tuple(kept)

    if checked:
        if any(mod.id == modifier.id for mod in current):
            return tuple(current)
        return tuple(current + [modifier])
    return tuple(mod for mod in current if mod.id != modifier.id)
