# client/storefront/api/payment_api.py
"""
Operaciones remotas sobre las sesiones de pago del proveedor externo.
"""

import logging

from storefront.api.base import APIClient
from storefront.core.exceptions import APIError, AmountTooSmallError
from storefront.core.formatting import to_decimal
from storefront.schemas.payment_schema import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentSession,
)

logger = logging.getLogger(__name__)

# Mínimo del proveedor cuando el backend no lo informa (0.50 USD)
DEFAULT_MINIMUM_AMOUNT = "0.50"


class PaymentAPI:
    """Creación y recuperación de sesiones de pago."""

    def __init__(self, client: APIClient):
        self.client = client

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSessionResponse:
        """
        Solicita una sesión de pago por el importe indicado.

        Raises:
            AmountTooSmallError: el importe no alcanza el mínimo del proveedor
            APIError: cualquier otro rechazo del backend
        """
        try:
            data = await self.client.request(
                "POST",
                "/payment/create-checkout-session",
                json=request.to_payload(),
                error_message="Failed to create checkout session.",
            )
        except APIError as e:
            if e.payload.get("errorCode") == "amount_too_small":
                raise AmountTooSmallError(
                    e.payload.get("message"),
                    minimum_amount=to_decimal(e.payload.get("minimumAmount") or DEFAULT_MINIMUM_AMOUNT),
                    current_amount=to_decimal(e.payload.get("currentAmount") or request.amount),
                    payload=e.payload,
                ) from e
            raise

        return CheckoutSessionResponse.model_validate(data)

    async def get_session(self, session_id: str) -> PaymentSession:
        data = await self.client.request(
            "GET",
            f"/payment/session/{session_id}",
            error_message="Failed to retrieve checkout session.",
        )
        session = data.get("session")
        if not isinstance(session, dict):
            raise APIError("Failed to retrieve checkout session.", payload=data)
        return PaymentSession.model_validate(session)
