"""Helpers for currency amounts held as integer cents."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("invalid amount")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"invalid amount: {value!r}")


def to_cents(amount: Any) -> int:
    """Convert a dollar amount (``10.5``, ``"4.99"``) to integer cents.

    Sub-cent input is rounded half-up; this is the only rounding applied on the
    way in.
    """
    if amount is None or amount == "":
        return 0
    value = _to_decimal(amount)
    if not value.is_finite():
        raise ValueError(f"invalid amount: {amount!r}")
    return int((value * _HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_exact(cents: int | Decimal) -> Decimal:
    """Dollars without rounding (``172.5`` cents -> ``Decimal('1.725')``)."""
    return _to_decimal(cents) / _HUNDRED


def round_cents(cents: int | Decimal) -> int:
    return int(_to_decimal(cents).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_amount(cents: int | Decimal) -> Decimal:
    """Dollars rounded half-up to the cent, for wire payloads and charges."""
    return (_to_decimal(round_cents(cents)) / _HUNDRED).quantize(CENT)


def format_money(cents: int | Decimal, symbol: str = "$") -> str:
    amount = cents_to_amount(cents)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
