# client/storefront/api/cart_api.py
"""
Operaciones remotas sobre el recurso carrito.

Todas devuelven el carrito completo y autoritativo del servidor.
"""

from typing import Any, Dict, Optional

from storefront.api.base import APIClient
from storefront.core.exceptions import APIError
from storefront.schemas.cart_schema import Cart


class CartAPI:
    """CRUD autenticado sobre /cart."""

    def __init__(self, client: APIClient):
        self.client = client

    def _parse_cart(self, data: Dict[str, Any]) -> Cart:
        payload = data.get("data")
        if payload is None:
            # Usuario sin carrito todavía
            return Cart.empty()
        if not isinstance(payload, dict):
            raise APIError("Unexpected cart payload from server")
        return Cart.model_validate(payload)

    async def get_cart(self) -> Cart:
        data = await self.client.request("GET", "/cart", error_message="Failed to load cart.")
        return self._parse_cart(data)

    async def update_item_quantity(self, item_id: str, quantity: int) -> Cart:
        data = await self.client.request(
            "PUT",
            f"/cart/items/{item_id}",
            json={"quantity": quantity},
            error_message="Failed to update cart item.",
        )
        return self._parse_cart(data)

    async def update_item_options(self, item_id: str, color: Optional[str], size: Optional[str]) -> Cart:
        data = await self.client.request(
            "PUT",
            f"/cart/items/{item_id}",
            json={key: value for key, value in (("color", color), ("size", size)) if value is not None},
            error_message="Failed to update cart item.",
        )
        return self._parse_cart(data)

    async def remove_item(self, item_id: str) -> Cart:
        data = await self.client.request(
            "DELETE",
            f"/cart/items/{item_id}",
            error_message="Failed to remove item from cart.",
        )
        return self._parse_cart(data)
