"""Tests for the checkout sequencer use case."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest
from conftest import FakeTokenizer, make_draft, make_response

from storefront.application.checkout.sequencer import CheckoutSequencer
from storefront.core.exceptions import (
    CheckoutStateError,
    CheckoutValidationError,
    OrderOutcomeUnknownError,
    OrderRecordingError,
    OrderRejectedError,
)
from storefront.domain.checkout_fsm import CheckoutState


def _sequencer(cart, client, navigator, notifier) -> CheckoutSequencer:
    keys = iter(["key-1", "key-2", "key-3"])
    return CheckoutSequencer(cart, client, navigator, notifier, key_factory=lambda: next(keys))


def _ready_to_pay(cart, client, navigator, notifier, order_type: str = "pickup") -> CheckoutSequencer:
    cart.add_item(make_draft("burger", price_cents=1000))
    sequencer = _sequencer(cart, client, navigator, notifier)
    assert sequencer.start()
    sequencer.set_order_type(order_type)
    sequencer.update_customer_info(name="Ana", email="ana@example.com", phone="305-555-0101")
    if order_type == "delivery":
        sequencer.update_delivery_info(address="1 Main St", zip_code="33101")
    assert sequencer.continue_to_payment()
    return sequencer


def test_empty_cart_redirects_to_menu(cart, order_client, navigator, notifier) -> None:
    sequencer = _sequencer(cart, order_client, navigator, notifier)

    assert sequencer.start() is False
    assert sequencer.state == CheckoutState.IDLE
    assert navigator.paths == ["/full-menu"]


def test_order_type_sets_delivery_fee(cart, order_client, navigator, notifier) -> None:
    cart.add_item(make_draft("burger"))
    sequencer = _sequencer(cart, order_client, navigator, notifier)
    sequencer.start()

    sequencer.set_order_type("delivery")
    assert cart.state.delivery_fee_cents == 499
    sequencer.set_order_type("pickup")
    assert cart.state.delivery_fee_cents == 0


def test_missing_info_blocks_payment(cart, order_client, navigator, notifier) -> None:
    cart.add_item(make_draft("burger"))
    sequencer = _sequencer(cart, order_client, navigator, notifier)
    sequencer.start()
    sequencer.update_customer_info(name="Ana")

    assert sequencer.continue_to_payment() is False
    assert sequencer.state == CheckoutState.COLLECTING_INFO
    assert isinstance(sequencer.last_error, CheckoutValidationError)
    assert sequencer.last_error.fields == ["email", "phone"]
    assert notifier.titles == ["Missing Information"]
    assert order_client.requests == []


def test_delivery_without_address_blocks_payment(cart, order_client, navigator, notifier) -> None:
    cart.add_item(make_draft("burger"))
    sequencer = _sequencer(cart, order_client, navigator, notifier)
    sequencer.start()
    sequencer.set_order_type("delivery")
    sequencer.update_customer_info(name="Ana", email="ana@example.com", phone="305-555-0101")

    assert sequencer.continue_to_payment() is False
    assert notifier.titles == ["Missing Delivery Information"]


def test_form_is_locked_after_continuing(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)

    with pytest.raises(CheckoutStateError):
        sequencer.update_customer_info(name="Bob")
    sequencer.back_to_info()
    sequencer.update_customer_info(name="Bob")
    assert sequencer.form.customer.name == "Bob"


@pytest.mark.asyncio
async def test_successful_order_clears_cart_and_navigates(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier, order_type="delivery")

    response = await sequencer.pay(FakeTokenizer())

    assert response.order_id == "JF-1001"
    assert sequencer.state == CheckoutState.CONFIRMED
    assert cart.is_empty
    assert navigator.paths == ["/order-confirmation/JF-1001"]
    assert notifier.messages[-1] == ("Order Placed Successfully!", "Your order #JF-1001 has been confirmed.", "default")

    wire = order_client.requests[0].to_wire()
    assert wire["paymentToken"] == "cnon:card-nonce-ok"
    assert wire["orderType"] == "delivery"
    assert wire["deliveryInfo"]["zipCode"] == "33101"
    assert (wire["subtotal"], wire["tax"], wire["deliveryFee"], wire["total"]) == (10.0, 0.75, 4.99, 15.74)


@pytest.mark.asyncio
async def test_widget_error_keeps_payment_step(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    tokenizer = FakeTokenizer(result={"status": "INVALID", "errors": [{"message": "Card declined"}]})

    assert await sequencer.pay(tokenizer) is None

    assert sequencer.state == CheckoutState.AWAITING_PAYMENT
    assert sequencer.history[-2:] == [CheckoutState.FAILED, CheckoutState.AWAITING_PAYMENT]
    assert notifier.messages[-1] == ("Payment Error", "Card declined", "destructive")
    assert order_client.requests == []


@pytest.mark.asyncio
async def test_rejected_order_keeps_cart_and_allows_new_payment(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    order_client.outcomes = [OrderRejectedError("Card declined")]
    lines_before = cart.lines

    assert await sequencer.submit_payment_token("tok-1") is None

    assert cart.lines == lines_before
    assert sequencer.state == CheckoutState.AWAITING_PAYMENT
    assert sequencer.submit_enabled
    assert not sequencer.can_retry_submission
    assert navigator.paths == []

    await sequencer.submit_payment_token("tok-2")
    assert [r.idempotency_key for r in order_client.requests] == ["key-1", "key-2"]
    assert sequencer.state == CheckoutState.CONFIRMED


@pytest.mark.asyncio
async def test_recording_error_blocks_retry_and_points_to_support(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    order_client.outcomes = [OrderRecordingError("order save failed", payment_id="pay_9")]

    await sequencer.submit_payment_token("tok-1")

    assert sequencer.state == CheckoutState.FAILED
    assert not sequencer.can_retry_submission
    assert not sequencer.submit_enabled
    assert not sequencer.can_cancel
    assert sequencer.last_error.charged is True
    _, description, variant = notifier.messages[-1]
    assert "(305) 699-1430" in description
    assert "pay_9" in description
    assert variant == "destructive"
    assert cart.item_count == 1
    with pytest.raises(CheckoutStateError):
        await sequencer.retry_submission()


@pytest.mark.asyncio
async def test_unknown_outcome_retries_identical_request(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    order_client.outcomes = [OrderOutcomeUnknownError("timeout")]

    await sequencer.submit_payment_token("tok-1")
    assert sequencer.state == CheckoutState.FAILED
    assert sequencer.can_retry_submission
    assert cart.item_count == 1

    response = await sequencer.retry_submission()

    assert response is not None
    first, second = order_client.requests
    assert second is first
    assert second.idempotency_key == "key-1"
    assert sequencer.state == CheckoutState.CONFIRMED


@pytest.mark.asyncio
async def test_unexpected_client_error_is_treated_as_unknown(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)

    async def explode(_request):
        raise RuntimeError("socket reset")

    order_client.on_submit = explode
    await sequencer.submit_payment_token("tok-1")

    assert isinstance(sequencer.last_error, OrderOutcomeUnknownError)
    assert sequencer.can_retry_submission


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_refused(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    attempts = []

    async def click_again(_request):
        attempts.append(await sequencer.submit_payment_token("tok-2"))
        attempts.append(sequencer.cancel())

    order_client.on_submit = click_again
    await sequencer.submit_payment_token("tok-1")

    assert attempts == [None, False]
    assert len(order_client.requests) == 1
    assert "Your order is already being submitted." in [desc for _, desc, _ in notifier.messages]


@pytest.mark.asyncio
async def test_cart_edits_during_submission_carry_over(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)

    async def add_fries(_request):
        cart.add_item(make_draft("fries", price_cents=400))
        cart.add_item(make_draft("burger", price_cents=1000))

    order_client.on_submit = add_fries
    order_client.outcomes = [make_response()]
    await sequencer.submit_payment_token("tok-1")

    request = order_client.requests[0]
    assert [(line.line_key, line.quantity) for line in request.lines] == [("burger", 1)]
    assert request.totals.subtotal_cents == 1000
    assert [(line.line_key, line.quantity) for line in cart.lines] == [("burger", 1), ("fries", 1)]


@pytest.mark.asyncio
async def test_cart_emptied_before_submit_redirects(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    cart.clear_cart()

    assert await sequencer.submit_payment_token("tok-1") is None
    assert sequencer.state == CheckoutState.IDLE
    assert navigator.paths == ["/full-menu"]
    assert order_client.requests == []


def test_cancel_before_payment_resets_form(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)

    assert sequencer.cancel() is True
    assert sequencer.state == CheckoutState.IDLE
    assert sequencer.form.customer.name == ""
    assert cart.item_count == 1


@dataclass
class GatedTokenizer:
    gate: asyncio.Event

    async def tokenize(self) -> dict:
        await self.gate.wait()
        return {"status": "OK", "token": "cnon:card-nonce-ok"}


@pytest.mark.asyncio
async def test_form_stays_locked_while_widget_tokenizes(cart, order_client, navigator, notifier) -> None:
    sequencer = _ready_to_pay(cart, order_client, navigator, notifier)
    gate = asyncio.Event()

    task = asyncio.create_task(sequencer.pay(GatedTokenizer(gate)))
    await asyncio.sleep(0)

    assert sequencer.back_to_info() is False
    assert sequencer.cancel() is False
    assert sequencer.state == CheckoutState.AWAITING_PAYMENT

    gate.set()
    response = await task

    assert response.order_id == "JF-1001"
    assert sequencer.state == CheckoutState.CONFIRMED
