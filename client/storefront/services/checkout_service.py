# client/storefront/services/checkout_service.py
"""
Flujo de Checkout del cliente.

Gestiona la página de checkout desde que el usuario llega con su carrito
hasta que se le redirige al checkout alojado del proveedor de pagos:
1. Cargar el carrito (vacío => error)
2. Elegir método de envío (el gratuito solo desde FREE_SHIPPING_THRESHOLD)
3. Crear la sesión de pago por subtotal + envío - descuento
4. Redirigir a la URL externa de la sesión

Los datos de envío NO se piden aquí: los recoge el proveedor en su
formulario y se leen de la sesión al volver (ver order_service).
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union

from storefront.api.payment_api import PaymentAPI
from storefront.core.config import settings
from storefront.core.exceptions import (
    AmountTooSmallError,
    APIError,
    CheckoutValidationError,
    user_message,
)
from storefront.core.formatting import format_money, round_money
from storefront.core.navigation import Navigator
from storefront.core.security import TokenStore, decode_user_id
from storefront.schemas.cart_schema import Cart, CartItem
from storefront.schemas.payment_schema import (
    CheckoutSessionRequest,
    ShippingMethod,
    ShippingOption,
)
from storefront.services.cart_service import OptimisticCartStore

logger = logging.getLogger(__name__)

CHECKOUT_STEPS = ["Cart", "Shipping Method"]

EMPTY_CART_MESSAGE = "Your cart is empty. Please add items to cart first."
SHIPPING_METHOD_REQUIRED_MESSAGE = "Please select a shipping method."
MISSING_CHECKOUT_URL_MESSAGE = "Checkout URL not received from server."


@dataclass
class CheckoutResult:
    """Resultado de submit(): o bien una URL de redirección, o bien un error."""
    redirect_url: Optional[str] = None
    session_id: Optional[str] = None
    amount: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.redirect_url is not None and self.error is None


def ensure_item_options(cart: Optional[Cart]) -> List[CartItem]:
    """Items a los que aún les falta color o talla (los accesorios solo color)."""
    if cart is None:
        return []
    return cart.items_needing_options()


class CheckoutSessionBuilder:
    """
    Estado y acciones de la página de checkout.
    """

    def __init__(
        self,
        store: OptimisticCartStore,
        payments: PaymentAPI,
        navigator: Navigator,
        token_store: TokenStore,
    ):
        self.store = store
        self.payments = payments
        self.navigator = navigator
        self.token_store = token_store

        self.steps = list(CHECKOUT_STEPS)
        self.active_step = 1
        self.shipping_method: Optional[ShippingMethod] = None
        self.shipping_fee = Decimal("0.00")
        self.discount_amount = Decimal("0.00")
        self.shipping_method_error = False
        self.shipping_expanded = False
        self.submitting = False
        self.error: Optional[str] = None

    # ========================================
    # ESTADO DERIVADO
    # ========================================

    @property
    def cart(self) -> Optional[Cart]:
        return self.store.cart

    @property
    def subtotal(self) -> Decimal:
        return self.cart.subtotal if self.cart else Decimal("0.00")

    @property
    def is_complete(self) -> bool:
        return self.shipping_method is not None

    def payable_total(self) -> Decimal:
        return round_money(self.subtotal + self.shipping_fee - self.discount_amount)

    def shipping_options(self) -> List[ShippingOption]:
        subtotal = self.subtotal
        return [
            ShippingOption(
                method=method,
                label=method.label,
                fee=method.fee,
                available=method.is_available(subtotal),
            )
            for method in ShippingMethod
        ]

    def preflight(self, cart: Optional[Cart] = None) -> List[CartItem]:
        return ensure_item_options(cart if cart is not None else self.cart)

    # ========================================
    # ACCIONES
    # ========================================

    async def load(self) -> Optional[Cart]:
        cart = await self.store.fetch_cart()
        if self.store.error:
            self.error = self.store.error
        elif cart is None or cart.is_empty:
            self.error = EMPTY_CART_MESSAGE
        else:
            self.error = None
        return cart

    def select_shipping_method(self, method: Union[ShippingMethod, str]) -> ShippingMethod:
        """
        Fija el método de envío y su coste.

        Raises:
            CheckoutValidationError: método desconocido, o gratuito por debajo del umbral
        """
        try:
            method = ShippingMethod(method)
        except ValueError:
            raise CheckoutValidationError(f"Unknown shipping method: {method}", field="shipping_method")

        if not method.is_available(self.subtotal):
            raise CheckoutValidationError(
                f"Free shipping is only available on orders of {format_money(settings.FREE_SHIPPING_THRESHOLD)} or more.",
                field="shipping_method",
            )

        self.shipping_method = method
        self.shipping_fee = method.fee
        self.shipping_method_error = False
        return method

    async def update_quantity(self, item_id: str, new_quantity: int) -> Optional[Cart]:
        return await self.store.update_quantity(item_id, new_quantity)

    async def remove_item(self, item_id: str) -> Optional[Cart]:
        """Elimina un item; si el carrito queda vacío se vuelve a /cart."""
        cart = await self.store.remove_item(item_id)
        if cart is not None and cart.is_empty:
            logger.info("Carrito vacío tras eliminar el último item; volviendo al carrito")
            self.navigator.navigate(settings.CART_PATH)
        return cart

    def _reject_shipping(self, message: str) -> CheckoutResult:
        self.error = message
        self.shipping_method_error = True
        self.shipping_expanded = True
        return CheckoutResult(error=message)

    def _build_request(self, cart: Cart, user_id: str) -> CheckoutSessionRequest:
        order_items = [item.to_metadata_item() for item in cart.items]
        return CheckoutSessionRequest(
            amount=self.payable_total(),
            currency=settings.CURRENCY,
            metadata={
                "userId": user_id,
                "shippingFee": str(round_money(self.shipping_fee)),
                "discountAmount": str(round_money(self.discount_amount)),
                "shippingMethod": self.shipping_method.value,
                "orderItems": json.dumps(order_items),
            },
            order_items=[item.to_payload() for item in cart.items],
            shipping_fee=self.shipping_fee,
            discount_amount=self.discount_amount,
        )

    async def submit(self) -> CheckoutResult:
        """
        Crea la sesión de pago y redirige al checkout externo.

        Nunca lanza: los fallos quedan en CheckoutResult.error (y en self.error).
        No hay reintento automático.
        """
        self.error = None

        if self.submitting:
            logger.debug("submit() ignorado: ya hay una sesión en creación")
            return CheckoutResult()

        cart = self.cart
        if cart is None or cart.is_empty:
            self.error = EMPTY_CART_MESSAGE
            return CheckoutResult(error=EMPTY_CART_MESSAGE)

        if self.shipping_method is None:
            return self._reject_shipping(SHIPPING_METHOD_REQUIRED_MESSAGE)

        if not self.shipping_method.is_available(cart.subtotal):
            # Selección forzada de envío gratuito por debajo del umbral
            logger.warning(f"Envío gratuito rechazado con subtotal {cart.subtotal}")
            self.shipping_method = None
            self.shipping_fee = Decimal("0.00")
            return self._reject_shipping(SHIPPING_METHOD_REQUIRED_MESSAGE)

        self.shipping_method_error = False
        self.submitting = True

        try:
            user_id = decode_user_id(self.token_store.get_token())
            request = self._build_request(cart, user_id)
            logger.info(
                f"Creando sesión de pago por {request.amount} {request.currency} "
                f"(envío {self.shipping_method.value})"
            )
            response = await self.payments.create_checkout_session(request)
            if not response.url:
                raise APIError(MISSING_CHECKOUT_URL_MESSAGE)
        except asyncio.CancelledError:
            self.submitting = False
            raise
        except AmountTooSmallError as e:
            logger.warning(f"Importe por debajo del mínimo: {e.current_amount} < {e.minimum_amount}")
            return self._fail(e.message)
        except APIError as e:
            message = e.message
            detail = e.payload.get("error")
            if detail:
                message = f"{message} Error: {detail}"
            logger.error(f"Error creando la sesión de pago: {message}")
            return self._fail(message)
        except Exception as e:
            logger.error(f"Error creando la sesión de pago: {e}")
            return self._fail(user_message(e))

        self.navigator.redirect_external(response.url)
        return CheckoutResult(redirect_url=response.url, session_id=response.session_id, amount=request.amount)

    def _fail(self, message: str) -> CheckoutResult:
        self.error = message or "An error occurred during payment. Please try again."
        self.submitting = False
        return CheckoutResult(error=self.error)
