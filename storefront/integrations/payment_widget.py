"""Adapter for the card tokenization widget.

The widget answers ``{"status": "OK", "token": "..."}`` or a non-OK status
with ``{"errors": [{"message": ...}, ...]}``.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from storefront.core.exceptions import PaymentError
from storefront.core.messages import get_text

logger = logging.getLogger(__name__)

STATUS_OK = "OK"


class PaymentTokenizer(Protocol):
    async def tokenize(self) -> Mapping[str, Any]: ...


def parse_tokenization_result(result: Mapping[str, Any] | None) -> str:
    """Return the payment token or raise PaymentError with the widget's messages."""
    if not result:
        raise PaymentError(get_text("payment_failed"))

    if result.get("status") == STATUS_OK:
        token = str(result.get("token") or "").strip()
        if token:
            return token
        logger.warning("Payment widget returned OK without a token")
        raise PaymentError(get_text("payment_failed"))

    messages = [
        str(error.get("message") if isinstance(error, Mapping) else error)
        for error in (result.get("errors") or [])
    ]
    messages = [message for message in messages if message]
    raise PaymentError(", ".join(messages) if messages else get_text("payment_failed"))


async def request_token(tokenizer: PaymentTokenizer | None) -> str:
    if tokenizer is None:
        raise PaymentError(get_text("payment_not_ready"))
    try:
        result = await tokenizer.tokenize()
    except PaymentError:
        raise
    except Exception as exc:
        logger.error("Payment tokenization failed: %s", exc)
        raise PaymentError(get_text("payment_failed")) from exc
    return parse_tokenization_result(result)
