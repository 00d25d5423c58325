"""
Idempotency helpers for order creation.

Stores request hashes and cached responses to prevent duplicate orders.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def normalize_idempotency_key(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def build_request_hash(payload: dict[str, Any]) -> str:
    """Generate a stable hash for a request payload."""
    serialized = json.dumps(
        payload,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class _IdempotencyRecord:
    request_hash: str
    response_body: str | None = None
    status_code: int | None = None


class IdempotencyStore:
    """Process-local idempotency records keyed by the client's key."""

    def __init__(self) -> None:
        self._records: dict[str, _IdempotencyRecord] = {}
        self._lock = threading.Lock()

    def check_or_reserve_key(self, key: str | None, request_hash: str) -> dict[str, Any]:
        """Return cached response or reserve idempotency key for processing."""
        key = normalize_idempotency_key(key)
        if not key:
            return {"status": "skip"}

        with self._lock:
            existing = self._records.get(key)
            if existing is None:
                self._records[key] = _IdempotencyRecord(request_hash=request_hash)
                return {"status": "reserved", "key": key}

        if existing.request_hash != request_hash:
            return {
                "status": "conflict",
                "payload": {"error": "Idempotency key reuse with different payload", "charged": False},
                "status_code": 409,
            }
        if existing.response_body and existing.status_code is not None:
            try:
                payload = json.loads(existing.response_body)
            except ValueError:
                payload = {"error": "Cached response unavailable"}
            return {"status": "cached", "payload": payload, "status_code": existing.status_code}
        return {
            "status": "in_progress",
            "payload": {"error": "Request in progress"},
            "status_code": 409,
        }

    def store_response(
        self,
        key: str | None,
        request_hash: str,
        payload: dict[str, Any],
        status_code: int,
    ) -> None:
        key = normalize_idempotency_key(key)
        if not key:
            return
        try:
            response_body = json.dumps(payload, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to store idempotency response: %s", exc)
            return

        with self._lock:
            record = self._records.get(key)
            if record is None or record.request_hash != request_hash:
                return
            record.response_body = response_body
            record.status_code = int(status_code)

    def release(self, key: str | None) -> None:
        """Forget a reservation that produced no answer so the key can be retried."""
        key = normalize_idempotency_key(key)
        if not key:
            return
        with self._lock:
            record = self._records.get(key)
            if record is not None and record.response_body is None:
                del self._records[key]
