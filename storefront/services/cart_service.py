"""Cart aggregate: the single owner of cart contents.

Every mutation builds the new line tuple and totals first and swaps the
state in one assignment, then writes the snapshot through to the store and
notifies subscribers. Readers only ever see complete ``CartState`` values.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, Iterable

from storefront.core.constants import CART_STORAGE_KEY, SPECIAL_INSTRUCTIONS_MAX_LENGTH
from storefront.core.exceptions import CartValidationError, PersistenceError
from storefront.core.money import to_cents
from storefront.core.order_math import CartTotals, compute_totals, item_count
from storefront.domain.cart import CartItemDraft, CartLine, Modifier, coerce_quantity
from storefront.domain.catalog import CatalogItem
from storefront.domain.line_key import find_line_key, resolve_line_key
from storefront.integrations.cart_store import CartSnapshot, CartStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CartState:
    lines: tuple[CartLine, ...] = ()
    is_open: bool = False
    delivery_fee_cents: int = 0
    totals: CartTotals = field(default_factory=CartTotals)

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def tax(self) -> Decimal:
        return self.totals.tax

    @property
    def total(self) -> Decimal:
        return self.totals.total

    @property
    def item_count(self) -> int:
        return item_count(self.lines)

    def get_line(self, line_key: str) -> CartLine | None:
        for line in self.lines:
            if line.line_key == line_key:
                return line
        return None


CartListener = Callable[[CartState], Any]


def _clean_instructions(text: str | None) -> str | None:
    if text is None:
        return None
    cleaned = str(text).strip()
    if not cleaned:
        return None
    if len(cleaned) > SPECIAL_INSTRUCTIONS_MAX_LENGTH:
        raise CartValidationError(
            f"Special instructions are limited to {SPECIAL_INSTRUCTIONS_MAX_LENGTH} characters"
        )
    return cleaned


class CartService:
    """Shopping cart with write-through persistence and change subscriptions."""

    def __init__(self, store: CartStore | None = None, storage_key: str = CART_STORAGE_KEY):
        self._store = store
        self._storage_key = storage_key
        self._listeners: list[CartListener] = []
        self._state = self._initial_state()

    # ------------------------------------------------------------------ state

    def _initial_state(self) -> CartState:
        if self._store is None:
            return CartState()
        try:
            snapshot = self._store.load_snapshot(self._storage_key)
        except PersistenceError as exc:
            logger.warning("Cart snapshot unavailable, continuing in memory: %s", exc)
            self._store = None
            return CartState()
        if snapshot is None:
            return CartState()
        logger.info("Restored cart %s with %s lines", self._storage_key, len(snapshot.lines))
        return CartState(
            lines=snapshot.lines,
            delivery_fee_cents=snapshot.delivery_fee_cents,
            totals=compute_totals(snapshot.lines, snapshot.delivery_fee_cents),
        )

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return self._state.lines

    @property
    def item_count(self) -> int:
        return self._state.item_count

    @property
    def is_empty(self) -> bool:
        return not self._state.lines

    @property
    def persistent(self) -> bool:
        return self._store is not None

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register ``listener(state)``; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Cart listener %r failed", listener)

    def _persist(self) -> None:
        if self._store is None:
            return
        snapshot = CartSnapshot(lines=self._state.lines, delivery_fee_cents=self._state.delivery_fee_cents)
        try:
            self._store.save_snapshot(self._storage_key, snapshot)
        except PersistenceError as exc:
            logger.warning("Cart persistence disabled for this session: %s", exc)
            self._store = None

    def _commit(self, lines: Iterable[CartLine], delivery_fee_cents: int | None = None) -> None:
        new_lines = tuple(lines)
        fee = self._state.delivery_fee_cents if delivery_fee_cents is None else delivery_fee_cents
        self._state = replace(
            self._state,
            lines=new_lines,
            delivery_fee_cents=fee,
            totals=compute_totals(new_lines, fee),
        )
        self._persist()
        self._notify()

    # -------------------------------------------------------------- mutations

    def add_item(self, item: CartItemDraft) -> CartLine:
        """Add one unit; an existing line with the same key only gains quantity."""
        if not item.in_stock:
            raise CartValidationError(f"{item.name} is out of stock")
        if item.unit_price_cents < 0:
            raise CartValidationError(f"{item.name} has a negative price")
        instructions = _clean_instructions(item.special_instructions)

        line_key = resolve_line_key(item.catalog_item_id, item.modifiers)
        lines = list(self._state.lines)
        for idx, line in enumerate(lines):
            if line.line_key == line_key:
                lines[idx] = line.with_quantity(line.quantity + 1)
                self._commit(lines)
                logger.debug("Cart line %s qty=%s", line_key, lines[idx].quantity)
                return lines[idx]

        new_line = CartLine(
            catalog_item_id=item.catalog_item_id,
            line_key=line_key,
            name=item.name,
            unit_price_cents=item.unit_price_cents,
            quantity=1,
            modifiers=tuple(item.modifiers),
            special_instructions=instructions,
            description=item.description,
            category=item.category,
        )
        lines.append(new_line)
        self._commit(lines)
        logger.debug("Added cart line %s", line_key)
        return new_line

    def add_catalog_item(
        self,
        item: CatalogItem,
        modifiers: Iterable[Modifier] = (),
        special_instructions: str | None = None,
    ) -> CartLine:
        """Add a menu entry with the modifiers picked in its customization dialog."""
        selected = tuple(modifiers)
        for mod in selected:
            if not any(modifier_list.contains(mod.id) for modifier_list in item.modifier_lists):
                raise CartValidationError(f"{mod.name or mod.id} is not offered for {item.name}")
        return self.add_item(item.to_draft(selected, special_instructions=special_instructions))

    def remove_item(self, key: Any, modifiers: Iterable[Any] | None = None) -> bool:
        """Drop the addressed line. Unknown keys are ignored."""
        line_key = find_line_key(self._state.lines, key, modifiers)
        if line_key is None:
            return False
        self._commit(line for line in self._state.lines if line.line_key != line_key)
        logger.debug("Removed cart line %s", line_key)
        return True

    def update_quantity(self, key: Any, quantity: int, modifiers: Iterable[Any] | None = None) -> bool:
        """Set a line's quantity in place; zero or less removes the line."""
        quantity = coerce_quantity(quantity)
        if quantity <= 0:
            return self.remove_item(key, modifiers)

        line_key = find_line_key(self._state.lines, key, modifiers)
        if line_key is None:
            return False
        self._commit(
            line.with_quantity(quantity) if line.line_key == line_key else line
            for line in self._state.lines
        )
        return True

    def clear_cart(self) -> None:
        """Empty the cart; the delivery fee setting stays."""
        self._commit(())
        logger.info("Cleared cart %s", self._storage_key)

    def remove_ordered_lines(self, ordered: Iterable[CartLine]) -> None:
        """Take already-ordered quantities out of the cart, keeping anything newer."""
        ordered_qty = {line.line_key: line.quantity for line in ordered}
        remaining = []
        for line in self._state.lines:
            left = line.quantity - ordered_qty.get(line.line_key, 0)
            if left > 0:
                remaining.append(line.with_quantity(left))
        self._commit(remaining)

    def set_delivery_fee(self, amount: Any) -> None:
        """Set the fee in dollars (``4.99``); lines are untouched."""
        fee_cents = to_cents(amount)
        if fee_cents < 0:
            raise ValueError("delivery fee cannot be negative")
        self._commit(self._state.lines, delivery_fee_cents=fee_cents)

    # ------------------------------------------------------------- UI-only

    def toggle_cart(self) -> None:
        self._state = replace(self._state, is_open=not self._state.is_open)
        self._notify()

    def set_cart_open(self, is_open: bool) -> None:
        self._state = replace(self._state, is_open=bool(is_open))
        self._notify()
