"""Cart line identity derived from a catalog item and its modifiers.

Two lines are the same line when they share a catalog item id and the same
set of modifier ids; selection order does not matter. An item without
modifiers is keyed by its bare catalog id, so it merges with lines stored
before modifiers existed.

Ids are joined as ``id::mod-a|mod-b``. Any ``%``, ``:`` or ``|`` inside an id
is percent-encoded first, so distinct modifier sets never share a key.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Sequence

if TYPE_CHECKING:
    from storefront.domain.cart import CartLine

KEY_SEPARATOR = "::"
MODIFIER_SEPARATOR = "|"

_ESCAPES = (("%", "%25"), (":", "%3A"), ("|", "%7C"))


def _escape(part: str) -> str:
    for raw, encoded in _ESCAPES:
        part = part.replace(raw, encoded)
    return part


def _modifier_id(modifier: Any) -> str:
    if isinstance(modifier, str):
        return modifier
    if isinstance(modifier, dict):
        return str(modifier["id"])
    return str(modifier.id)


def resolve_line_key(catalog_item_id: Any, modifiers: Iterable[Any] = ()) -> str:
    base = _escape(str(catalog_item_id))
    modifier_ids = sorted({_escape(_modifier_id(mod)) for mod in modifiers})
    if not modifier_ids:
        return base
    return f"{base}{KEY_SEPARATOR}{MODIFIER_SEPARATOR.join(modifier_ids)}"


def find_line_key(
    lines: Sequence[CartLine],
    key: Any,
    modifiers: Iterable[Any] | None = None,
) -> str | None:
    """Return the line key of the line addressed by ``key``, or None.

    Resolution order:
    1. ``modifiers`` given: ``key`` is a catalog id, recompute the line key.
    2. ``key`` equals a stored line key.
    3. ``key`` equals the catalog id of exactly one line (callers that only
       know the item id). Ambiguous ids resolve to nothing.
    """
    known = {line.line_key for line in lines}

    if modifiers is not None:
        resolved = resolve_line_key(key, modifiers)
        return resolved if resolved in known else None

    literal = str(key)
    if literal in known:
        return literal

    matches = [line.line_key for line in lines if str(line.catalog_item_id) == literal]
    if len(matches) == 1:
        return matches[0]
    return None
