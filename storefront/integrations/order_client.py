"""HTTP client for the order-creation endpoint."""
from __future__ import annotations

import asyncio
import json
import logging
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from storefront.core.exceptions import (
    OrderLookupError,
    OrderNotFoundException,
    OrderOutcomeUnknownError,
    OrderRecordingError,
    OrderRejectedError,
    OrderSubmissionError,
)
from storefront.domain.order import ErrorPayload, OrderRequest, OrderResponse, OrderResponsePayload

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
ORDERS_PATH = "/api/orders"

# statuses where the server may still be working on (or have finished) the order
_OUTCOME_UNKNOWN_STATUSES = frozenset({408, 409, 425, 429})


def _parse_error_body(status: int, body: str) -> ErrorPayload:
    try:
        data = json.loads(body) if body else {}
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    if isinstance(data.get("detail"), dict):
        # FastAPI wraps HTTPException details
        data = data["detail"]
    elif isinstance(data.get("detail"), str) and "error" not in data:
        data["error"] = data["detail"]
    try:
        payload = ErrorPayload.model_validate(data)
    except ValidationError:
        payload = ErrorPayload()
    if "error" not in data:
        payload = payload.model_copy(update={"error": f"HTTP {status}: {body}".strip()})
    return payload


def error_from_response(status: int, body: str, idempotency_key: str | None = None) -> OrderSubmissionError:
    """Map a non-2xx answer to the matching typed submission error."""
    payload = _parse_error_body(status, body)
    common = {
        "status_code": status,
        "idempotency_key": idempotency_key,
        "payment_id": payload.payment_id,
    }
    if payload.charged is True:
        return OrderRecordingError(payload.error, **common)
    if payload.charged is False:
        return OrderRejectedError(payload.error, **common)
    if status >= 500 or status in _OUTCOME_UNKNOWN_STATUSES:
        return OrderOutcomeUnknownError(payload.error, **common)
    return OrderRejectedError(payload.error, **common)


class OrderSubmissionClient:
    """Posts orders to the order endpoint and reads them back."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> OrderSubmissionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def submit_order(self, request: OrderRequest) -> OrderResponse:
        session = await self._get_session()
        url = f"{self._base_url}{ORDERS_PATH}"
        key = request.idempotency_key
        payload = request.to_wire()

        logger.info("Submitting order key=%s items=%s", key, len(payload["items"]))
        try:
            async with session.post(url, json=payload, headers={IDEMPOTENCY_HEADER: key}) as resp:
                status = resp.status
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Order submission key=%s got no answer: %r", key, exc)
            raise OrderOutcomeUnknownError(
                f"Order endpoint unreachable: {exc!r}", idempotency_key=key
            ) from exc

        if not 200 <= status < 300:
            logger.error("Order creation failed: %s %s", status, body)
            raise error_from_response(status, body, key)

        try:
            parsed = OrderResponsePayload.model_validate_json(body)
        except ValidationError as exc:
            logger.error("Malformed order response for key=%s: %s", key, body)
            raise OrderOutcomeUnknownError(
                "Order endpoint returned a malformed response", status_code=status, idempotency_key=key
            ) from exc

        response = OrderResponse.from_payload(parsed)
        logger.info("Order %s created (status=%s)", response.order_id, response.status)
        return response

    async def get_order(self, order_id: str) -> OrderResponse:
        session = await self._get_session()
        url = f"{self._base_url}{ORDERS_PATH}/{quote(str(order_id), safe='')}"
        try:
            async with session.get(url) as resp:
                status = resp.status
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise OrderLookupError(f"Order endpoint unreachable: {exc!r}") from exc

        if status == 404:
            raise OrderNotFoundException(str(order_id))
        if not 200 <= status < 300:
            raise OrderLookupError(f"HTTP {status}: {body}")
        try:
            return OrderResponse.from_payload(OrderResponsePayload.model_validate_json(body))
        except ValidationError as exc:
            raise OrderLookupError("Order endpoint returned a malformed response") from exc
