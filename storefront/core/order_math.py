"""Shared helpers for cart totals and quantities."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from storefront.core.constants import TAX_RATE
from storefront.core.money import cents_to_amount, cents_to_exact, round_cents
from storefront.domain.cart import CartLine


@dataclass(frozen=True, slots=True)
class CartTotals:
    """Derived totals in cents.

    ``tax_cents`` and ``total_cents`` are exact Decimals and may hold a
    fraction of a cent; round only when presenting or charging.
    """

    subtotal_cents: int = 0
    tax_cents: Decimal = Decimal(0)
    delivery_fee_cents: int = 0
    total_cents: Decimal = Decimal(0)

    @property
    def subtotal(self) -> Decimal:
        return cents_to_exact(self.subtotal_cents)

    @property
    def tax(self) -> Decimal:
        return cents_to_exact(self.tax_cents)

    @property
    def delivery_fee(self) -> Decimal:
        return cents_to_exact(self.delivery_fee_cents)

    @property
    def total(self) -> Decimal:
        return cents_to_exact(self.total_cents)

    @property
    def charge_cents(self) -> int:
        """Amount actually charged, rounded half-up to the cent."""
        return round_cents(self.total_cents)

    def rounded(self) -> dict[str, Decimal]:
        """Dollar amounts rounded to the cent for wire payloads."""
        return {
            "subtotal": cents_to_amount(self.subtotal_cents),
            "tax": cents_to_amount(self.tax_cents),
            "deliveryFee": cents_to_amount(self.delivery_fee_cents),
            "total": cents_to_amount(self.total_cents),
        }


def calc_subtotal(lines: Iterable[CartLine]) -> int:
    # modifier prices are per unit, so they scale with quantity
    return sum((line.unit_price_cents + line.modifier_total_cents) * line.quantity for line in lines)


def calc_tax(subtotal_cents: int) -> Decimal:
    return Decimal(subtotal_cents) * TAX_RATE


def compute_totals(lines: Iterable[CartLine], delivery_fee_cents: int = 0) -> CartTotals:
    subtotal = calc_subtotal(lines)
    tax = calc_tax(subtotal)
    fee = int(delivery_fee_cents or 0)
    return CartTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        delivery_fee_cents=fee,
        total_cents=Decimal(subtotal) + tax + fee,
    )


def item_count(lines: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in lines)
