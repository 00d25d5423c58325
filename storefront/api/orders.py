"""
Order endpoint for the storefront checkout.

Creates an order in two phases: the card is authorized, the order is
recorded, and only then is the payment captured. Error bodies carry a
``charged`` flag so the client knows whether money moved.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from storefront.api.idempotency import IdempotencyStore, build_request_hash, normalize_idempotency_key
from storefront.api.payments import PaymentGateway
from storefront.api.repository import OrderRepository
from storefront.core.constants import ORDER_TYPE_DELIVERY
from storefront.core.exceptions import OrderNotFoundException, PaymentError
from storefront.core.money import round_cents, to_cents
from storefront.core.order_math import CartTotals, compute_totals
from storefront.core.sentry_integration import capture_exception
from storefront.domain.cart import CartLine
from storefront.domain.order import OrderRequestPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


@dataclass(slots=True)
class OrderContext:
    gateway: PaymentGateway
    repository: OrderRepository
    idempotency: IdempotencyStore
    delivery_fee_cents: int


# set by create_app
_context: OrderContext | None = None


def set_order_context(context: OrderContext | None) -> None:
    global _context
    _context = context


def get_order_context() -> OrderContext:
    """Dependency to get the order endpoint collaborators."""
    if _context is None:
        raise HTTPException(status_code=503, detail={"error": "Order service not available"})
    return _context


def _error(message: str, charged: bool | None = None, payment_id: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message}
    if charged is not None:
        body["charged"] = charged
    if payment_id:
        body["paymentId"] = payment_id
    return body


def recompute_totals(payload: OrderRequestPayload, delivery_fee_cents: int) -> CartTotals:
    """Totals for the submitted items, priced the same way the cart prices them."""
    lines = [CartLine.from_dict(item.model_dump(by_alias=True, mode="json")) for item in payload.items]
    fee = delivery_fee_cents if payload.order_type == ORDER_TYPE_DELIVERY else 0
    return compute_totals(lines, fee)


def totals_mismatch(payload: OrderRequestPayload, totals: CartTotals) -> str | None:
    submitted = {
        "subtotal": to_cents(payload.subtotal),
        "tax": to_cents(payload.tax),
        "deliveryFee": to_cents(payload.delivery_fee),
        "total": to_cents(payload.total),
    }
    expected = {
        "subtotal": totals.subtotal_cents,
        "tax": round_cents(totals.tax_cents),
        "deliveryFee": totals.delivery_fee_cents,
        "total": totals.charge_cents,
    }
    for name, cents in expected.items():
        if submitted[name] != cents:
            return f"{name} mismatch: expected {cents} cents, got {submitted[name]}"
    return None


async def process_order(
    context: OrderContext,
    payload: OrderRequestPayload,
    payment_key: str,
) -> tuple[int, dict[str, Any] | None]:
    """Run authorize -> record -> capture and return ``(status, body)``.

    A ``None`` body means the outcome is unknown and nothing may be cached.
    """
    try:
        totals = recompute_totals(payload, context.delivery_fee_cents)
    except (KeyError, TypeError, ValueError) as exc:
        return 400, _error(f"Invalid order items: {exc}", charged=False)
    mismatch = totals_mismatch(payload, totals)
    if mismatch:
        logger.warning("Rejected order key=%s: %s", payment_key, mismatch)
        return 400, _error(f"Order totals do not match: {mismatch}", charged=False)

    try:
        payment = await context.gateway.authorize(payload.payment_token, totals.charge_cents, payment_key)
    except PaymentError as exc:
        logger.info("Payment declined key=%s: %s", payment_key, exc.message)
        return 402, _error(exc.message, charged=False)
    except Exception as exc:
        logger.exception("Payment authorization failed key=%s", payment_key)
        capture_exception(exc, order={"idempotency_key": payment_key})
        return 502, None

    try:
        order = context.repository.create(payload)
    except Exception as exc:
        logger.exception("Failed to record order key=%s", payment_key)
        capture_exception(exc, order={"idempotency_key": payment_key})
        return await _void(context, payment.payment_id, "Order could not be recorded")

    try:
        await context.gateway.capture(payment.payment_id)
    except Exception:
        logger.exception("Payment capture failed payment=%s", payment.payment_id)
        context.repository.delete(order.order_id)
        return await _void(context, payment.payment_id, "Payment could not be completed")

    try:
        order = context.repository.confirm(order.order_id, payment.payment_id)
    except Exception as exc:
        logger.critical(
            "Payment %s captured but order %s could not be finalized", payment.payment_id, order.order_id
        )
        capture_exception(exc, order={"order_id": order.order_id, "payment_id": payment.payment_id})
        return 502, _error(
            "Payment captured but the order could not be finalized",
            charged=True,
            payment_id=payment.payment_id,
        )

    logger.info("Order %s confirmed payment=%s", order.order_id, payment.payment_id)
    return 200, order.to_response()


async def _void(context: OrderContext, payment_id: str, message: str) -> tuple[int, dict[str, Any] | None]:
    try:
        await context.gateway.void(payment_id)
    except Exception as exc:
        logger.exception("Failed to void payment %s", payment_id)
        capture_exception(exc, order={"payment_id": payment_id})
        return 502, None
    return 500, _error(message, charged=False)


@router.post("")
async def create_order(
    payload: OrderRequestPayload,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    context: OrderContext = Depends(get_order_context),
) -> JSONResponse:
    """Create an order and charge the card exactly once per idempotency key."""
    key = normalize_idempotency_key(idempotency_key)
    request_hash = build_request_hash(payload.model_dump(by_alias=True, mode="json"))

    idem_result = context.idempotency.check_or_reserve_key(key, request_hash)
    if idem_result.get("status") in ("cached", "conflict", "in_progress"):
        return JSONResponse(idem_result.get("payload", {}), status_code=int(idem_result.get("status_code", 409)))

    payment_key = key or uuid.uuid4().hex
    try:
        status_code, body = await process_order(context, payload, payment_key)
    except Exception:
        context.idempotency.release(key)
        raise

    if body is None:
        # no definite outcome; the client may resend with the same key
        context.idempotency.release(key)
        return JSONResponse(_error("Order outcome unknown, retry with the same key"), status_code=status_code)

    context.idempotency.store_response(key, request_hash, body, status_code)
    return JSONResponse(body, status_code=status_code)


@router.get("/{order_id}")
async def get_order(order_id: str, context: OrderContext = Depends(get_order_context)) -> JSONResponse:
    try:
        order = context.repository.get(order_id)
    except OrderNotFoundException as exc:
        raise HTTPException(status_code=404, detail={"error": exc.message})
    return JSONResponse(order.to_response())
