"""Order records kept by the order endpoint."""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from storefront.core.constants import ORDER_TYPE_DELIVERY
from storefront.core.exceptions import OrderNotFoundException
from storefront.domain.order import OrderRequestPayload, OrderStatus

logger = logging.getLogger(__name__)

PICKUP_READY_MINUTES = 20
DELIVERY_READY_MINUTES = 45


@dataclass(frozen=True, slots=True)
class StoredOrder:
    order_id: str
    status: str
    request: OrderRequestPayload
    payment_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    estimated_ready_time: datetime | None = None

    def to_response(self) -> dict[str, Any]:
        """Body of a successful POST/GET, in the wire's camelCase form."""
        body: dict[str, Any] = {
            "orderId": self.order_id,
            "paymentId": self.payment_id,
            "status": self.status,
            "estimatedReadyTime": (
                self.estimated_ready_time.isoformat() if self.estimated_ready_time else None
            ),
            "subtotal": self.request.subtotal,
            "tax": self.request.tax,
            "deliveryFee": self.request.delivery_fee,
            "total": self.request.total,
            "orderType": self.request.order_type,
            "items": [
                item.model_dump(by_alias=True, exclude_none=True, mode="json")
                for item in self.request.items
            ],
        }
        return {key: value for key, value in body.items() if value is not None}


class OrderRepository(Protocol):
    def create(self, request: OrderRequestPayload) -> StoredOrder: ...

    def confirm(self, order_id: str, payment_id: str) -> StoredOrder: ...

    def delete(self, order_id: str) -> None: ...

    def get(self, order_id: str) -> StoredOrder: ...


class InMemoryOrderRepository:
    """Orders held in process memory."""

    def __init__(self) -> None:
        self._orders: dict[str, StoredOrder] = {}
        self._lock = threading.Lock()

    def create(self, request: OrderRequestPayload) -> StoredOrder:
        minutes = DELIVERY_READY_MINUTES if request.order_type == ORDER_TYPE_DELIVERY else PICKUP_READY_MINUTES
        now = datetime.now(timezone.utc)
        order = StoredOrder(
            order_id=f"JF-{uuid.uuid4().hex[:8].upper()}",
            status=OrderStatus.PENDING,
            request=request,
            created_at=now,
            estimated_ready_time=now + timedelta(minutes=minutes),
        )
        with self._lock:
            self._orders[order.order_id] = order
        logger.info("Recorded order %s (%s)", order.order_id, request.order_type)
        return order

    def confirm(self, order_id: str, payment_id: str) -> StoredOrder:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundException(order_id)
            order = replace(order, status=OrderStatus.CONFIRMED, payment_id=payment_id)
            self._orders[order_id] = order
        return order

    def delete(self, order_id: str) -> None:
        with self._lock:
            self._orders.pop(order_id, None)

    def get(self, order_id: str) -> StoredOrder:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order
