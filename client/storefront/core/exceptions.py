# client/storefront/core/exceptions.py
"""
Excepciones propias del cliente de la tienda.

Todas heredan de StorefrontError. Los servicios capturan estas excepciones
en el componente que lanzó la llamada y las convierten en mensajes legibles
con user_message(); los códigos internos solo se registran en el log.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Error base del cliente."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class APIError(StorefrontError):
    """El backend respondió con success=false o con un status de error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message, code=code, details=self.payload)


class AuthenticationError(APIError):
    """No hay token o el backend lo ha rechazado."""


class ConnectionTimeout(StorefrontError):
    """La petición superó FETCH_TIMEOUT."""

    def __init__(self, url: str):
        self.url = url
        super().__init__("CONNECTION_TIMEOUT", code="CONNECTION_TIMEOUT")


class NetworkError(StorefrontError):
    """No se pudo contactar con el servidor."""

    def __init__(self, url: str, original_error: Optional[Exception] = None):
        self.url = url
        self.original_error = original_error
        super().__init__("NETWORK_ERROR", code="NETWORK_ERROR")


class CheckoutValidationError(StorefrontError):
    """Validación en cliente; nunca se envía al servidor."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, code="VALIDATION_ERROR")


class AmountTooSmallError(APIError):
    """El importe está por debajo del mínimo del proveedor de pagos."""

    def __init__(
        self,
        message: Optional[str],
        minimum_amount: Decimal,
        current_amount: Decimal,
        payload: Optional[Dict[str, Any]] = None,
    ):
        self.minimum_amount = minimum_amount
        self.current_amount = current_amount
        if not message:
            message = (
                f"Minimum order amount is ${minimum_amount:.2f}. "
                f"Your order total is ${current_amount:.2f}. Please add more items to your cart."
            )
        super().__init__(message, status_code=400, code="amount_too_small", payload=payload)


class MissingSessionError(StorefrontError):
    """La URL de retorno no trae identificador de sesión de pago."""

    def __init__(self):
        super().__init__("No session ID found.", code="MISSING_SESSION")


class PaymentNotCompletedError(StorefrontError):
    """La sesión de pago existe pero no está pagada."""

    def __init__(self, payment_status: Optional[str]):
        self.payment_status = payment_status
        super().__init__("Payment was not completed successfully.", code="PAYMENT_NOT_COMPLETED")


class OrderCreationError(APIError):
    """El pago se capturó pero el pedido no pudo crearse."""


def user_message(error: Exception) -> str:
    """
    Traduce una excepción al mensaje en lenguaje natural que ve el usuario.
    """
    if isinstance(error, ConnectionTimeout):
        return (
            f"Connection timeout. The server at {error.url} did not respond in time. "
            "Please check if the server is running and try again."
        )
    if isinstance(error, NetworkError):
        return f"Unable to connect to {error.url}. Please check your internet connection and try again."
    if isinstance(error, StorefrontError) and error.message:
        return error.message
    return "An error occurred. Please try again."
