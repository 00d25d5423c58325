"""Card payment gateway used by the order endpoint.

Payments go through two phases: ``authorize`` holds the amount on the card,
``capture`` moves the money and ``void`` releases a hold that was never
captured.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from storefront.core.exceptions import PaymentError

logger = logging.getLogger(__name__)

# sandbox card nonce that always declines
DECLINED_TOKEN_PREFIX = "cnon:card-nonce-declined"


class PaymentStatus:
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    VOIDED = "voided"


@dataclass(slots=True)
class Payment:
    payment_id: str
    amount_cents: int
    idempotency_key: str
    status: str = PaymentStatus.AUTHORIZED


class PaymentGateway(Protocol):
    async def authorize(self, token: str, amount_cents: int, idempotency_key: str) -> Payment: ...

    async def capture(self, payment_id: str) -> Payment: ...

    async def void(self, payment_id: str) -> Payment: ...


class SandboxPaymentGateway:
    """In-memory gateway for local runs; same key authorizes only once."""

    def __init__(self) -> None:
        self.payments: dict[str, Payment] = {}
        self._by_key: dict[str, str] = {}

    async def authorize(self, token: str, amount_cents: int, idempotency_key: str) -> Payment:
        existing_id = self._by_key.get(idempotency_key)
        if existing_id:
            return self.payments[existing_id]
        if not token or token.startswith(DECLINED_TOKEN_PREFIX):
            raise PaymentError("Card declined")
        if amount_cents <= 0:
            raise PaymentError("Payment amount must be positive")

        payment = Payment(
            payment_id=f"pay_{uuid.uuid4().hex[:16]}",
            amount_cents=amount_cents,
            idempotency_key=idempotency_key,
        )
        self.payments[payment.payment_id] = payment
        self._by_key[idempotency_key] = payment.payment_id
        logger.info("Authorized %s for %s cents", payment.payment_id, amount_cents)
        return payment

    def _get(self, payment_id: str) -> Payment:
        payment = self.payments.get(payment_id)
        if payment is None:
            raise PaymentError(f"Unknown payment {payment_id}")
        return payment

    async def capture(self, payment_id: str) -> Payment:
        payment = self._get(payment_id)
        if payment.status == PaymentStatus.VOIDED:
            raise PaymentError(f"Payment {payment_id} was voided")
        payment.status = PaymentStatus.CAPTURED
        return payment

    async def void(self, payment_id: str) -> Payment:
        payment = self._get(payment_id)
        if payment.status == PaymentStatus.CAPTURED:
            raise PaymentError(f"Payment {payment_id} already captured")
        payment.status = PaymentStatus.VOIDED
        return payment
