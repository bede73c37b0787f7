# client/tests/conftest.py
"""Fixtures compartidas: backend REST falso servido con httpx.MockTransport."""

import asyncio
import base64
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from storefront.api.storefront_api import StorefrontAPI
from storefront.core.events import EventBus
from storefront.core.navigation import Navigator
from storefront.core.security import TokenStore
from storefront.services.cart_service import OptimisticCartStore

BASE_URL = "http://shop.test/api"


def make_token(user_id: str = "user-1") -> str:
    def encode(data: Dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")

    return f"{encode({'alg': 'HS256', 'typ': 'JWT'})}.{encode({'userId': user_id})}.signature"


def make_item(
    item_id: str = "item-1",
    price: float = 20.0,
    quantity: int = 1,
    color: Optional[str] = "black",
    size: Optional[str] = "M",
    category: str = "tops",
    product_id: Optional[str] = None,
) -> Dict[str, Any]:
    product_id = product_id or f"prod-{item_id}"
    return {
        "_id": item_id,
        "product": {
            "_id": product_id,
            "name": f"Product {item_id}",
            "sku": f"SKU-{item_id}",
            "image": f"/images/{product_id}.jpg",
            "category": category,
        },
        "quantity": quantity,
        "price": price,
        "color": color,
        "size": size,
        "finalSale": False,
    }


class FakeBackend:
    """
    Backend en memoria: carrito, sesiones de pago y pedidos.

    Los pedidos tienen restricción única sobre paymentInfo.sessionId: una
    segunda creación para la misma sesión devuelve el pedido existente.
    """

    def __init__(self, token: str):
        self.token = token
        self.cart_items: List[Dict[str, Any]] = []
        self.has_cart = True
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.orders_by_session: Dict[str, str] = {}
        self.requests: List[Tuple[str, str]] = []
        self.fail_paths: Dict[Tuple[str, str], int] = {}
        self.latency = 0.0
        self.delays: List[float] = []
        self.omit_checkout_url = False
        self.order_error: Optional[Dict[str, Any]] = None

    # ---- helpers de los tests ----

    def set_cart(self, *items: Dict[str, Any]) -> None:
        self.cart_items = [dict(item) for item in items]
        self.has_cart = True

    def fail(self, method: str, path: str, times: int = 1) -> None:
        """Las próximas `times` peticiones a (method, path) responden 500."""
        self.fail_paths[(method, path)] = times

    def count(self, method: str, prefix: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith(prefix))

    def pay(
        self,
        session_id: str,
        customer_details: Optional[Dict[str, Any]] = None,
        shipping_details: Optional[Dict[str, Any]] = None,
        status: str = "paid",
    ) -> None:
        session = self.sessions[session_id]
        session["payment_status"] = status
        session["customer_details"] = customer_details
        session["shipping_details"] = shipping_details

    def add_session(self, session_id: str, amount: float, metadata: Dict[str, Any], **details: Any) -> None:
        self.sessions[session_id] = {
            "id": session_id,
            "payment_status": "unpaid",
            "amount_total": amount,
            "currency": "usd",
            "metadata": metadata,
            "customer_details": None,
            "shipping_details": None,
        }
        if details:
            self.pay(session_id, **details)

    def cart_payload(self) -> Optional[Dict[str, Any]]:
        if not self.has_cart:
            return None
        return {
            "_id": "cart-1",
            "items": self.cart_items,
            "totalAmount": round(sum(i["price"] * i["quantity"] for i in self.cart_items), 2),
            "totalItems": sum(i["quantity"] for i in self.cart_items),
        }

    # ---- transporte ----

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api"):]
        self.requests.append((request.method, path))

        # `delays` fija la latencia de las próximas peticiones, en orden de llegada
        delay = self.delays.pop(0) if self.delays else self.latency
        if delay:
            await asyncio.sleep(delay)

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"success": False, "message": "Not authorized"})

        remaining = self.fail_paths.get((request.method, path), 0)
        if remaining:
            self.fail_paths[(request.method, path)] = remaining - 1
            return httpx.Response(500, json={"success": False, "message": "Internal server error"})

        body = json.loads(request.content) if request.content else {}

        if path == "/cart" and request.method == "GET":
            return httpx.Response(200, json={"success": True, "data": self.cart_payload()})
        if path.startswith("/cart/items/"):
            return self._cart_item(request.method, path.rsplit("/", 1)[-1], body)
        if path == "/payment/create-checkout-session":
            return self._create_session(body)
        if path.startswith("/payment/session/"):
            session = self.sessions.get(path.rsplit("/", 1)[-1])
            if session is None:
                return httpx.Response(404, json={"success": False, "message": "Session not found"})
            return httpx.Response(200, json={"success": True, "session": session})
        if path == "/orders" and request.method == "POST":
            return self._create_order(body)
        if path.startswith("/orders/"):
            order = self.orders.get(path.rsplit("/", 1)[-1])
            if order is None:
                return httpx.Response(404, json={"success": False, "message": "Order not found"})
            return httpx.Response(200, json={"success": True, "data": order})

        return httpx.Response(404, json={"success": False, "message": "Not found"})

    def _cart_item(self, method: str, item_id: str, body: Dict[str, Any]) -> httpx.Response:
        item = next((i for i in self.cart_items if i["_id"] == item_id), None)
        if item is None:
            return httpx.Response(404, json={"success": False, "message": "Item not found"})
        if method == "DELETE":
            self.cart_items.remove(item)
        else:
            if "quantity" in body:
                if not 1 <= body["quantity"] <= 10:
                    return httpx.Response(400, json={"success": False, "message": "Invalid quantity"})
                item["quantity"] = body["quantity"]
            if "color" in body:
                item["color"] = body["color"]
            if "size" in body:
                item["size"] = body["size"]
        return httpx.Response(200, json={"success": True, "data": self.cart_payload()})

    def _create_session(self, body: Dict[str, Any]) -> httpx.Response:
        amount = body["amount"]
        if amount < 0.5:
            return httpx.Response(400, json={
                "success": False,
                "errorCode": "amount_too_small",
                "minimumAmount": 0.5,
                "currentAmount": amount,
            })
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.add_session(session_id, amount, dict(body.get("metadata") or {}))
        payload = {"success": True, "sessionId": session_id}
        if not self.omit_checkout_url:
            payload["url"] = f"https://checkout.pay.test/c/{session_id}"
        return httpx.Response(200, json=payload)

    def _create_order(self, body: Dict[str, Any]) -> httpx.Response:
        if self.order_error is not None:
            return httpx.Response(500, json=self.order_error)

        session_id = body["paymentInfo"]["sessionId"]
        existing = self.orders_by_session.get(session_id)
        if existing is not None:
            return httpx.Response(200, json={"success": True, "data": self.orders[existing]})

        source = body.get("orderItemsFromMetadata") or [
            {
                "productId": i["product"]["_id"],
                "productName": i["product"]["name"],
                "productSku": i["product"]["sku"],
                "productImage": i["product"]["image"],
                "quantity": i["quantity"],
                "price": i["price"],
                "color": i["color"],
                "size": i["size"],
            }
            for i in self.cart_items
        ]
        items = [
            {
                "product": i["productId"],
                "productName": i["productName"],
                "productSku": i["productSku"],
                "productImage": i["productImage"],
                "quantity": i["quantity"],
                "price": i["price"],
                "subtotal": round(i["price"] * i["quantity"], 2),
                "color": i["color"],
                "size": i["size"],
            }
            for i in source
        ]
        items_total = round(sum(i["subtotal"] for i in items), 2)
        order_id = f"order-{len(self.orders) + 1}"
        order = {
            "_id": order_id,
            "orderNumber": f"ORD-{1000 + len(self.orders)}",
            "status": "paid",
            "paymentStatus": "completed",
            "paymentMethod": body["paymentMethod"],
            "shippingInfo": body["shippingInfo"],
            "items": items,
            "itemsTotal": items_total,
            "shippingFee": body["shippingFee"],
            "shippingMethod": body["shippingMethod"],
            "discountAmount": body["discountAmount"],
            "totalAmount": round(items_total + body["shippingFee"] - body["discountAmount"], 2),
            "paymentInfo": body["paymentInfo"],
        }
        self.orders[order_id] = order
        self.orders_by_session[session_id] = order_id
        self.cart_items = []
        return httpx.Response(201, json={"success": True, "data": order})


@pytest.fixture
def token() -> str:
    return make_token()


@pytest.fixture
def token_store(token) -> TokenStore:
    return TokenStore(token)


@pytest.fixture
def backend(token) -> FakeBackend:
    return FakeBackend(token)


@pytest.fixture
async def api(backend, token_store):
    async with StorefrontAPI(
        base_url=BASE_URL,
        token_store=token_store,
        transport=httpx.MockTransport(backend.handler),
    ) as client:
        yield client


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def navigator() -> Navigator:
    return Navigator(initial_path="/cart")


@pytest.fixture
def store(api, bus) -> OptimisticCartStore:
    return OptimisticCartStore(api.cart, bus=bus)
