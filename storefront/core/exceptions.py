"""Custom exceptions for the storefront cart and checkout."""
from __future__ import annotations


class StorefrontException(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ConfigurationException(StorefrontException):
    """Configuration errors."""

    pass


class PersistenceError(StorefrontException):
    """Cart snapshot could not be read from or written to storage."""

    pass


class CartValidationError(StorefrontException):
    """Item rejected before it reached the cart."""

    pass


class CheckoutValidationError(StorefrontException):
    """Required customer or delivery fields are missing."""

    def __init__(self, message: str, fields: list[str]) -> None:
        super().__init__(message)
        self.fields = fields


class CheckoutStateError(StorefrontException):
    """Checkout action is not allowed in the current state."""

    def __init__(self, current: str, target: str, reason: str | None = None) -> None:
        super().__init__(reason or f"Transition '{current} -> {target}' is not allowed")
        self.current = current
        self.target = target


class PaymentError(StorefrontException):
    """Payment widget could not produce a token."""

    pass


class OrderNotFoundException(StorefrontException):
    """Order not found at the order endpoint."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderLookupError(StorefrontException):
    """Order endpoint could not return an existing order."""

    pass


class OrderSubmissionError(StorefrontException):
    """Order endpoint call failed.

    ``charged`` is True when the endpoint reported a captured payment, False when
    it reported that nothing was charged and None when the outcome is unknown.
    """

    retry_safe = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        charged: bool | None = None,
        idempotency_key: str | None = None,
        payment_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.charged = charged
        self.idempotency_key = idempotency_key
        self.payment_id = payment_id


class OrderRejectedError(OrderSubmissionError):
    """Request rejected before any charge; a new payment attempt is safe."""

    retry_safe = True

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("charged", False)
        super().__init__(message, **kwargs)


class OrderRecordingError(OrderSubmissionError):
    """Charge captured but the order was not recorded; never retry blindly."""

    retry_safe = False

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("charged", True)
        super().__init__(message, **kwargs)


class OrderOutcomeUnknownError(OrderSubmissionError):
    """No usable answer from the endpoint (network error, timeout, bad body).

    Resending the identical request with the same idempotency key is safe.
    """

    retry_safe = True
