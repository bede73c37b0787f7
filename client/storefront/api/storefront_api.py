# client/storefront/api/storefront_api.py
"""
Punto de entrada único a la API remota: agrupa carrito, pagos y pedidos
sobre un mismo APIClient (una sola conexión HTTP compartida).
"""

from typing import Optional

import httpx

from storefront.api.base import APIClient
from storefront.api.cart_api import CartAPI
from storefront.api.order_api import OrderAPI
from storefront.api.payment_api import PaymentAPI
from storefront.core.security import TokenStore


class StorefrontAPI:
    """
    Uso:
        async with StorefrontAPI() as api:
            cart = await api.cart.get_cart()
    """

    def __init__(
        self,
        client: Optional[APIClient] = None,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client = client or APIClient(base_url=base_url, token_store=token_store, transport=transport)
        self.cart = CartAPI(self.client)
        self.payments = PaymentAPI(self.client)
        self.orders = OrderAPI(self.client)

    @property
    def token_store(self) -> TokenStore:
        return self.client.token_store

    async def __aenter__(self) -> "StorefrontAPI":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()
