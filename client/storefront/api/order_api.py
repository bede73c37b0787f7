# client/storefront/api/order_api.py
"""
Operaciones remotas sobre pedidos.

POST /orders debe ser idempotente en paymentInfo.sessionId: el backend crea
como mucho un pedido por sesión de pago y, ante un reintento, devuelve el
pedido ya existente.
"""

import logging

from storefront.api.base import APIClient
from storefront.core.exceptions import APIError, OrderCreationError
from storefront.schemas.order_schema import Order, OrderCreate

logger = logging.getLogger(__name__)


class OrderAPI:
    """Creación y consulta de pedidos."""

    def __init__(self, client: APIClient):
        self.client = client

    async def create_order(self, order: OrderCreate) -> Order:
        try:
            data = await self.client.request(
                "POST",
                "/orders",
                json=order.to_payload(),
                error_message="Failed to create order.",
            )
        except APIError as e:
            message = e.message
            detail = e.payload.get("error")
            if detail:
                message = f"{message} ({detail})"
            logger.error(f"POST /orders falló para la sesión {order.idempotency_key}: {message}")
            raise OrderCreationError(message, status_code=e.status_code, code=e.code, payload=e.payload) from e

        payload = data.get("data")
        if not isinstance(payload, dict):
            raise OrderCreationError("Order was not returned by the server.", payload=data)
        return Order.model_validate(payload)

    async def get_order(self, order_id: str) -> Order:
        data = await self.client.request("GET", f"/orders/{order_id}", error_message="Failed to load order.")
        payload = data.get("data")
        if not isinstance(payload, dict):
            raise APIError("Failed to load order.", payload=data)
        return Order.model_validate(payload)
