from __future__ import annotations

import pytest
from conftest import make_response

from storefront.application.checkout.confirmation import ConfirmationView, load_confirmation


@pytest.mark.asyncio
async def test_confirmation_view_formats_order(order_client, navigator, notifier) -> None:
    order_client.orders["JF-1001"] = make_response(status="preparing")

    view = await load_confirmation(order_client, "JF-1001", navigator, notifier)

    assert view.status_label == "Preparing"
    assert view.total == "$11.83"
    assert view.tax == "$0.83"
    assert view.delivery_fee is None
    assert navigator.paths == []


@pytest.mark.asyncio
async def test_missing_order_notifies_and_goes_home(order_client, navigator, notifier) -> None:
    view = await load_confirmation(order_client, "JF-404", navigator, notifier)

    assert view is None
    assert navigator.paths == ["/"]
    assert notifier.titles == ["Order Not Found"]


def test_view_from_confirmed_response() -> None:
    response = make_response()
    view = ConfirmationView.from_response(response)
    assert view.status_label == "Confirmed"
    assert view.subtotal == "$11.00"
