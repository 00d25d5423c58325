from __future__ import annotations

import pytest

from storefront.domain.checkout import (
    CheckoutForm,
    CustomerInfo,
    DeliveryInfo,
    normalize_order_type,
    update_dataclass,
    validate_checkout_form,
)
from storefront.domain.checkout_fsm import CheckoutState, validate_checkout_transition

CUSTOMER = CustomerInfo(name="Ana", email="ana@example.com", phone="305-555-0101")


def test_pickup_needs_only_customer_info() -> None:
    assert validate_checkout_form(CheckoutForm(order_type="pickup", customer=CUSTOMER)).ok


def test_missing_customer_fields_are_reported() -> None:
    result = validate_checkout_form(CheckoutForm(customer=CustomerInfo(name="Ana", email=" ")))

    assert not result.ok
    assert result.error_key == "missing_customer_info"
    assert result.missing == ("email", "phone")


def test_delivery_requires_address_and_zip() -> None:
    form = CheckoutForm(order_type="delivery", customer=CUSTOMER, delivery=DeliveryInfo(address="1 Main St"))
    result = validate_checkout_form(form)

    assert result.error_key == "missing_delivery_info"
    assert result.missing == ("zip_code",)


def test_delivery_defaults_to_miami() -> None:
    data = DeliveryInfo(address="1 Main St", zip_code="33101").to_dict()

    assert data["city"] == "Miami"
    assert data["state"] == "FL"
    assert data["zipCode"] == "33101"
    assert "deliveryNotes" not in data


def test_order_type_is_normalized() -> None:
    assert normalize_order_type(" Delivery ") == "delivery"
    with pytest.raises(ValueError):
        normalize_order_type("dine-in")


def test_update_dataclass_rejects_unknown_fields() -> None:
    with pytest.raises(TypeError):
        update_dataclass(CUSTOMER, {"nickname": "A"})


def test_checkout_happy_path_transitions_allowed() -> None:
    path = [
        CheckoutState.IDLE,
        CheckoutState.COLLECTING_INFO,
        CheckoutState.AWAITING_PAYMENT,
        CheckoutState.SUBMITTING,
        CheckoutState.CONFIRMED,
    ]
    for current, target in zip(path, path[1:]):
        assert validate_checkout_transition(current, target).allowed


def test_confirmed_is_terminal() -> None:
    result = validate_checkout_transition(CheckoutState.CONFIRMED, CheckoutState.IDLE)
    assert not result.allowed


def test_submitting_cannot_be_abandoned() -> None:
    assert not validate_checkout_transition(CheckoutState.SUBMITTING, CheckoutState.IDLE).allowed
    assert not validate_checkout_transition(CheckoutState.FAILED, CheckoutState.IDLE).allowed


def test_failed_allows_retry_and_new_payment() -> None:
    assert validate_checkout_transition(CheckoutState.FAILED, CheckoutState.SUBMITTING).allowed
    assert validate_checkout_transition(CheckoutState.FAILED, CheckoutState.AWAITING_PAYMENT).allowed


def test_unknown_state_is_rejected() -> None:
    result = validate_checkout_transition(CheckoutState.IDLE, "shipping")
    assert not result.allowed
    assert "Unsupported" in result.reason
