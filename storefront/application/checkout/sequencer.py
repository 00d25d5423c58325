"""Use case: drive one checkout from the filled form to a recorded order.

States and allowed moves live in ``storefront.domain.checkout_fsm``. The
sequencer suspends only while the payment widget tokenizes and while the
order request is in flight. The request is frozen when submission starts,
so cart edits made meanwhile only show up in the next attempt.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Callable, Protocol

from storefront.core.constants import CONFIRMATION_PATH, DELIVERY_FEE, MENU_PATH
from storefront.core.exceptions import (
    CheckoutStateError,
    CheckoutValidationError,
    OrderOutcomeUnknownError,
    OrderRecordingError,
    OrderRejectedError,
    OrderSubmissionError,
    PaymentError,
    StorefrontException,
)
from storefront.core.messages import SUPPORT_PHONE, get_text
from storefront.core.sentry_integration import add_breadcrumb, capture_exception
from storefront.domain.checkout import (
    CheckoutForm,
    normalize_order_type,
    text_changes,
    update_dataclass,
    validate_checkout_form,
)
from storefront.domain.checkout_fsm import (
    CANCELLABLE_STATES,
    CheckoutState,
    validate_checkout_transition,
)
from storefront.domain.order import OrderRequest, OrderResponse
from storefront.integrations.payment_widget import PaymentTokenizer, request_token
from storefront.services.cart_service import CartService

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def go(self, path: str) -> None: ...


class Notifier(Protocol):
    def __call__(self, title: str, description: str, variant: str = "default") -> None: ...


class OrderClient(Protocol):
    async def submit_order(self, request: OrderRequest) -> OrderResponse: ...


def _log_notifier(title: str, description: str, variant: str = "default") -> None:
    level = logging.WARNING if variant == "destructive" else logging.INFO
    logger.log(level, "%s: %s", title, description)


class CheckoutSequencer:
    """Checkout state machine bound to one cart."""

    def __init__(
        self,
        cart: CartService,
        client: OrderClient,
        navigator: Navigator,
        notifier: Notifier | None = None,
        *,
        delivery_fee: Decimal = DELIVERY_FEE,
        key_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._cart = cart
        self._client = client
        self._navigator = navigator
        self._notify = notifier or _log_notifier
        self._delivery_fee = delivery_fee
        self._key_factory = key_factory

        self._state = CheckoutState.IDLE
        self._busy = False
        self._pending_request: OrderRequest | None = None
        self.form = CheckoutForm()
        self.history: list[str] = [CheckoutState.IDLE]
        self.last_error: StorefrontException | None = None
        self.confirmed_order: OrderResponse | None = None

    # ------------------------------------------------------------ properties

    @property
    def state(self) -> str:
        return self._state

    @property
    def submit_enabled(self) -> bool:
        return self._state == CheckoutState.AWAITING_PAYMENT and not self._busy

    @property
    def can_retry_submission(self) -> bool:
        return self._state == CheckoutState.FAILED and self._pending_request is not None and not self._busy

    @property
    def can_cancel(self) -> bool:
        return self._state in CANCELLABLE_STATES and not self._busy

    @property
    def pending_request(self) -> OrderRequest | None:
        return self._pending_request

    # -------------------------------------------------------------- helpers

    def _transition(self, target: str) -> None:
        result = validate_checkout_transition(self._state, target)
        if not result.allowed:
            raise CheckoutStateError(self._state, target, result.reason)
        logger.debug("Checkout %s -> %s", self._state, target)
        add_breadcrumb(f"checkout {self._state} -> {target}")
        self._state = target
        self.history.append(target)

    def _require(self, *states: str, action: str) -> None:
        if self._state not in states:
            raise CheckoutStateError(self._state, action, f"Cannot {action} while checkout is '{self._state}'")

    def _apply_delivery_fee(self) -> None:
        self._cart.set_delivery_fee(self._delivery_fee if self.form.is_delivery else 0)

    # ----------------------------------------------------------- form stage

    def start(self) -> bool:
        """Enter checkout. An empty cart sends the user back to the menu."""
        self._require(CheckoutState.IDLE, action="start checkout")
        if self._cart.is_empty:
            logger.info("Checkout opened with an empty cart; redirecting to menu")
            self._navigator.go(MENU_PATH)
            return False
        self._transition(CheckoutState.COLLECTING_INFO)
        self._apply_delivery_fee()
        return True

    def set_order_type(self, order_type: str) -> None:
        self._require(CheckoutState.IDLE, CheckoutState.COLLECTING_INFO, action="change order type")
        self.form = update_dataclass(self.form, {"order_type": normalize_order_type(order_type)})
        self._apply_delivery_fee()

    def update_customer_info(self, **changes: Any) -> None:
        self._require(CheckoutState.IDLE, CheckoutState.COLLECTING_INFO, action="edit customer info")
        self.form = update_dataclass(self.form, {"customer": update_dataclass(self.form.customer, text_changes(changes))})

    def update_delivery_info(self, **changes: Any) -> None:
        self._require(CheckoutState.IDLE, CheckoutState.COLLECTING_INFO, action="edit delivery info")
        self.form = update_dataclass(self.form, {"delivery": update_dataclass(self.form.delivery, text_changes(changes))})

    def continue_to_payment(self) -> bool:
        """Validate the form; only a valid form reaches the payment step."""
        self._require(CheckoutState.COLLECTING_INFO, action="continue to payment")
        result = validate_checkout_form(self.form)
        if not result.ok:
            message = get_text(result.error_key)
            self.last_error = CheckoutValidationError(message, list(result.missing))
            self._notify(get_text(f"{result.error_key}_title"), message, "destructive")
            return False
        self.last_error = None
        self._transition(CheckoutState.AWAITING_PAYMENT)
        return True

    def back_to_info(self) -> bool:
        """Reopen the form. Refused while the payment widget is working."""
        if self._busy:
            logger.info("Checkout back-to-info refused while payment is in progress")
            return False
        self._require(CheckoutState.AWAITING_PAYMENT, action="edit the form")
        self._transition(CheckoutState.COLLECTING_INFO)
        return True

    def cancel(self) -> bool:
        """Abandon checkout. Not offered once an order request went out."""
        if not self.can_cancel:
            logger.info("Checkout cancel refused in state %s", self._state)
            return False
        if self._state != CheckoutState.IDLE:
            self._transition(CheckoutState.IDLE)
        self.form = CheckoutForm()
        self.last_error = None
        return True

    # -------------------------------------------------------- payment stage

    async def pay(self, tokenizer: PaymentTokenizer | None) -> OrderResponse | None:
        """Tokenize through the payment widget, then submit the order."""
        if self._busy or self._state == CheckoutState.SUBMITTING:
            self._notify(get_text("order_failed_title"), get_text("order_in_progress"), "destructive")
            return None
        self._require(CheckoutState.AWAITING_PAYMENT, action="pay")

        self._busy = True
        try:
            token = await request_token(tokenizer)
        except PaymentError as exc:
            self._busy = False
            if self._state != CheckoutState.AWAITING_PAYMENT:
                logger.info("Dropping payment widget error, checkout is %s: %s", self._state, exc.message)
                return None
            self.payment_failed(exc.message)
            return None
        self._busy = False
        if self._state != CheckoutState.AWAITING_PAYMENT:
            logger.info("Dropping stale payment token, checkout is %s", self._state)
            return None
        return await self.submit_payment_token(token)

    def payment_failed(self, message: str) -> None:
        """Widget error: report it and stay ready for another attempt."""
        self._require(CheckoutState.AWAITING_PAYMENT, action="report a payment error")
        self.last_error = PaymentError(message)
        self._transition(CheckoutState.FAILED)
        self._notify(get_text("payment_error_title"), message, "destructive")
        self._transition(CheckoutState.AWAITING_PAYMENT)

    async def submit_payment_token(self, payment_token: str) -> OrderResponse | None:
        if self._busy or self._state == CheckoutState.SUBMITTING:
            self._notify(get_text("order_failed_title"), get_text("order_in_progress"), "destructive")
            return None
        self._require(CheckoutState.AWAITING_PAYMENT, action="submit the order")

        state = self._cart.state
        if not state.lines:
            logger.info("Cart emptied before submission; redirecting to menu")
            self._transition(CheckoutState.IDLE)
            self._navigator.go(MENU_PATH)
            return None

        request = OrderRequest(
            lines=state.lines,
            totals=state.totals,
            form=self.form,
            payment_token=payment_token,
            idempotency_key=self._key_factory(),
        )
        return await self._submit(request)

    async def retry_submission(self) -> OrderResponse | None:
        """Resend the last request unchanged, with the same idempotency key."""
        if not self.can_retry_submission:
            raise CheckoutStateError(self._state, CheckoutState.SUBMITTING, "No submission to retry")
        return await self._submit(self._pending_request)

    async def _submit(self, request: OrderRequest) -> OrderResponse | None:
        self._pending_request = request
        self._transition(CheckoutState.SUBMITTING)
        self._busy = True
        try:
            response = await self._client.submit_order(request)
        except Exception as exc:
            self._busy = False
            self._submission_failed(request, exc)
            return None
        self._busy = False

        self._pending_request = None
        self.last_error = None
        self.confirmed_order = response
        self._finish_cart(request)
        self._transition(CheckoutState.CONFIRMED)
        self._notify(
            get_text("order_placed_title"),
            get_text("order_placed", order_id=response.order_id),
        )
        self._navigator.go(CONFIRMATION_PATH.format(order_id=response.order_id))
        return response

    def _finish_cart(self, request: OrderRequest) -> None:
        if self._cart.state.lines == request.lines:
            self._cart.clear_cart()
            return
        # cart changed while the request was in flight: drop only what was ordered
        logger.info("Cart changed during submission; keeping lines added meanwhile")
        self._cart.remove_ordered_lines(request.lines)

    def _submission_failed(self, request: OrderRequest, exc: Exception) -> None:
        if not isinstance(exc, OrderSubmissionError):
            logger.exception("Unexpected error while submitting order key=%s", request.idempotency_key)
            exc = OrderOutcomeUnknownError(str(exc) or type(exc).__name__, idempotency_key=request.idempotency_key)
        self.last_error = exc
        self._transition(CheckoutState.FAILED)

        if isinstance(exc, OrderRecordingError) or exc.charged is True:
            # money moved; another attempt could charge twice
            self._pending_request = None
            reference = exc.payment_id or request.idempotency_key
            logger.error(
                "Order recording failed after charge key=%s payment=%s: %s",
                request.idempotency_key,
                exc.payment_id,
                exc.message,
            )
            capture_exception(exc, order={"idempotency_key": request.idempotency_key, "payment_id": exc.payment_id})
            self._notify(
                get_text("order_failed_title"),
                get_text("order_recording_failed", phone=SUPPORT_PHONE, reference=reference),
                "destructive",
            )
            return

        if isinstance(exc, OrderRejectedError) or exc.charged is False:
            # nothing charged; a fresh payment token starts a new attempt
            self._pending_request = None
            logger.warning("Order rejected key=%s: %s", request.idempotency_key, exc.message)
            self._notify(get_text("order_failed_title"), get_text("order_rejected"), "destructive")
            self._transition(CheckoutState.AWAITING_PAYMENT)
            return

        logger.warning("Order outcome unknown key=%s: %s", request.idempotency_key, exc.message)
        self._notify(get_text("order_failed_title"), get_text("order_outcome_unknown"), "destructive")
