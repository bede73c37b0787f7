# client/tests/test_order_service.py
"""Tests de la finalización del pedido tras el pago."""

import asyncio
import json
from decimal import Decimal

import pytest

from storefront.core.security import TokenStore
from storefront.schemas.payment_schema import PaymentSession
from storefront.services.checkout_service import CheckoutSessionBuilder
from storefront.services.order_service import (
    PaymentCompletionResolver,
    build_shipping_info,
)
from storefront.core.exceptions import CheckoutValidationError

from conftest import make_item

CUSTOMER = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "+1 (555) 123-4567",
    "address": {"line1": "1 Main St", "line2": "Apt 2", "city": "Austin", "state": "TX", "postal_code": "78701"},
}

METADATA = {
    "userId": "user-1",
    "shippingFee": "9.99",
    "discountAmount": "0.00",
    "shippingMethod": "standard",
    "orderItems": json.dumps([{
        "productId": "prod-a", "productName": "Tee", "productSku": "SKU-a", "productImage": "",
        "quantity": 2, "price": 20.0, "color": "black", "size": "M",
    }]),
}


def return_url(session_id: str) -> str:
    return f"https://shop.test/order/success?session_id={session_id}"


@pytest.fixture
def resolver(api, navigator, token_store):
    return PaymentCompletionResolver(api.payments, api.orders, navigator, token_store, redirect_delay=0)


@pytest.fixture
def paid_session(backend):
    backend.add_session("cs_paid", 49.99, METADATA, customer_details=CUSTOMER)
    return "cs_paid"


class TestResolve:
    async def test_creates_order_from_paid_session(self, resolver, backend, paid_session, navigator):
        result = await resolver.resolve(return_url(paid_session))

        assert result.ok
        order = result.order
        assert order.shipping_fee == Decimal("9.99")
        assert order.total_amount == Decimal("49.99")
        assert order.shipping_method == "standard"
        assert order.payment_method == "card"
        assert order.shipping_info.recipient_phone == "15551234567"
        assert order.shipping_info.apartment == "Apt 2"
        assert order.payment_info["amount"] == 49.99
        assert navigator.current_path == "/order/success?session_id=cs_paid"

        await resolver.redirect_task

        assert navigator.current_path == f"/order/{order.id}"
        assert navigator.current.state == {"order": order}

    async def test_history_never_returns_to_payment_page(self, resolver, paid_session, navigator):
        navigator.redirect_external("https://checkout.pay.test/c/cs_paid")
        navigator.navigate(return_url(paid_session))

        await resolver.resolve(navigator.current_path)
        await resolver.redirect_task

        paths = [entry.path for entry in navigator.entries]
        assert paths[-1].startswith("/order/order-")
        assert not any("session_id" in path for path in paths)

    async def test_unpaid_session_never_creates_order(self, resolver, backend):
        backend.add_session("cs_open", 49.99, METADATA)

        result = await resolver.resolve(return_url("cs_open"))

        assert result.error == "Payment was not completed successfully."
        assert result.retry_path == "/checkout"
        assert backend.count("POST", "/orders") == 0

    async def test_missing_session_id(self, resolver, backend):
        result = await resolver.resolve("https://shop.test/order/success")

        assert result.error == "No session ID found."
        assert result.retry_path == "/checkout"
        assert backend.requests == []

    async def test_not_logged_in(self, api, navigator, backend, paid_session):
        resolver = PaymentCompletionResolver(api.payments, api.orders, navigator, TokenStore(None), redirect_delay=0)

        result = await resolver.resolve(return_url(paid_session))

        assert result.error == "Please login to complete order."
        assert backend.requests == []

    async def test_unknown_session(self, resolver, backend):
        result = await resolver.resolve(return_url("cs_missing"))

        assert result.error == "Session not found"
        assert backend.count("POST", "/orders") == 0

    async def test_missing_address_is_a_hard_failure(self, resolver, backend):
        backend.add_session("cs_noaddr", 49.99, METADATA, customer_details={"name": "Jane Doe"})

        result = await resolver.resolve(return_url("cs_noaddr"))

        assert result.error == "Shipping address is missing from payment session."
        assert backend.count("POST", "/orders") == 0

    async def test_order_failure_is_reported_not_retried(self, resolver, backend, paid_session):
        backend.order_error = {"success": False, "message": "Failed to create order.", "error": "Out of stock"}

        result = await resolver.resolve(return_url(paid_session))

        assert result.error == "Failed to create order. (Out of stock)"
        assert result.retry_path == "/checkout"
        assert backend.count("POST", "/orders") == 1
        assert backend.orders == {}


class TestDuplicateProtection:
    async def test_concurrent_resolves_send_one_request(self, resolver, backend, paid_session):
        backend.latency = 0.01

        first, second = await asyncio.gather(
            resolver.resolve(return_url(paid_session)),
            resolver.resolve(return_url(paid_session)),
        )

        assert first.ok
        assert second.ignored
        assert backend.count("POST", "/orders") == 1

    async def test_resolved_order_is_reused(self, resolver, backend, paid_session):
        first = await resolver.resolve(return_url(paid_session))
        backend.requests.clear()

        again = await resolver.resolve(return_url(paid_session))

        assert again.from_cache
        assert again.order == first.order
        assert backend.requests == []

    async def test_page_reload_gets_same_order_from_server(self, api, navigator, token_store, backend, paid_session):
        results = []
        for _ in range(2):
            resolver = PaymentCompletionResolver(api.payments, api.orders, navigator, token_store, redirect_delay=0)
            results.append(await resolver.resolve(return_url(paid_session)))

        assert results[0].order.id == results[1].order.id
        assert len(backend.orders) == 1


class TestShippingInfo:
    def test_customer_details_preferred_for_name_and_phone(self):
        session = PaymentSession.model_validate({
            "customer_details": {"name": "Profile Name", "phone": "555-000-1111", "email": "p@example.com"},
            "shipping_details": {
                "name": "Typed Name",
                "phone": "555-999-8888",
                "address": {"line1": "9 Ship Rd", "city": "Reno"},
            },
        })

        info = build_shipping_info(session)

        assert info.recipient_name == "Profile Name"
        assert info.recipient_phone == "5550001111"
        assert info.address == "9 Ship Rd"
        assert info.city == "Reno"

    def test_falls_back_to_shipping_details_and_default_phone(self):
        session = PaymentSession.model_validate({
            "customer_details": {"address": {"line1": "1 Main St"}},
            "shipping_details": {"name": "Ship Name"},
        })

        info = build_shipping_info(session)

        assert info.recipient_name == "Ship Name"
        assert info.recipient_phone == "0000000000"
        assert info.address == "1 Main St"
        assert info.email == ""

    def test_missing_name(self):
        session = PaymentSession.model_validate({"customer_details": {"address": {"line1": "1 Main St"}}})

        with pytest.raises(CheckoutValidationError, match="Recipient name is missing"):
            build_shipping_info(session)


async def test_cart_to_order_end_to_end(store, api, navigator, token_store, backend):
    backend.set_cart(make_item("a", 20.0, 2))
    builder = CheckoutSessionBuilder(store, api.payments, navigator, token_store)
    await builder.load()
    assert builder.subtotal == Decimal("40.00")

    builder.select_shipping_method("standard")
    checkout = await builder.submit()
    assert checkout.amount == Decimal("49.99")

    backend.pay(checkout.session_id, customer_details=CUSTOMER)
    resolver = PaymentCompletionResolver(api.payments, api.orders, navigator, token_store, redirect_delay=0)
    result = await resolver.resolve(return_url(checkout.session_id))

    order = result.order
    assert order.shipping_fee == Decimal("9.99")
    assert order.total_amount == Decimal("49.99")
    assert order.items_total == Decimal("40.00")
    assert order.items[0].product_name == "Product a"
    assert order.session_id == checkout.session_id
    assert backend.cart_items == []
