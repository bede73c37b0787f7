# client/storefront/services/order_service.py
"""
Finalización del pedido al volver del checkout externo.

Convierte una sesión de pago completada en un pedido, como mucho una vez:
- La garantía real es del servidor: POST /orders es idempotente en el id de
  la sesión de pago.
- El guard en vuelo de este servicio solo evita peticiones duplicadas en el
  propio cliente (p. ej. recargas o doble montaje de la vista).

Tras crear el pedido se reescribe la entrada actual del historial y, pasado
CONFIRMATION_REDIRECT_DELAY, se navega a la página del pedido reemplazando
la entrada: "atrás" nunca devuelve al checkout ya consumido.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from storefront.api.order_api import OrderAPI
from storefront.api.payment_api import PaymentAPI
from storefront.core.config import settings
from storefront.core.exceptions import (
    CheckoutValidationError,
    MissingSessionError,
    OrderCreationError,
    PaymentNotCompletedError,
    StorefrontError,
    user_message,
)
from storefront.core.formatting import digits_only
from storefront.core.navigation import Navigator, build_path, get_query_param
from storefront.core.security import TokenStore
from storefront.schemas.order_schema import Order, OrderCreate, PaymentInfo, ShippingInfo
from storefront.schemas.payment_schema import Address, PaymentSession

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Resultado de resolve()."""
    order: Optional[Order] = None
    error: Optional[str] = None
    retry_path: Optional[str] = None
    from_cache: bool = False
    ignored: bool = False

    @property
    def ok(self) -> bool:
        return self.order is not None and self.error is None


def build_shipping_info(session: PaymentSession) -> ShippingInfo:
    """
    Datos de envío a partir de la sesión de pago.

    Nombre y teléfono se toman primero de customer_details (lo enviado en el
    formulario del proveedor) y luego de shipping_details; la dirección al
    revés. Si el proveedor rellenó el formulario con un perfil guardado y el
    usuario no lo cambió, customer_details trae ese perfil: no hay forma de
    distinguirlo de datos escritos de nuevo.

    Raises:
        CheckoutValidationError: falta el nombre del destinatario o la dirección
    """
    customer = session.customer_details
    shipping = session.shipping_details

    address = (shipping.address if shipping else None) or (customer.address if customer else None) or Address()
    recipient_name = (customer.name if customer else None) or (shipping.name if shipping else None) or ""
    recipient_phone = (customer.phone if customer else None) or (shipping.phone if shipping else None) or ""
    email = (customer.email if customer else None) or ""

    if not recipient_name:
        raise CheckoutValidationError("Recipient name is missing from payment session.", field="recipientName")
    if not address.line1:
        raise CheckoutValidationError("Shipping address is missing from payment session.", field="address")

    return ShippingInfo(
        recipient_name=recipient_name,
        recipient_phone=digits_only(recipient_phone) or settings.DEFAULT_RECIPIENT_PHONE,
        email=email,
        address=address.line1,
        apartment=address.line2 or "",
        city=address.city or "",
        state=address.state or "",
        postal_code=address.postal_code or "",
        delivery_request="",
    )


def build_order_request(session_id: str, session: PaymentSession) -> OrderCreate:
    """Petición de creación del pedido a partir de una sesión ya pagada."""
    return OrderCreate(
        shipping_info=build_shipping_info(session),
        payment_method=settings.DEFAULT_PAYMENT_METHOD,
        shipping_fee=session.metadata_decimal("shippingFee"),
        discount_amount=session.metadata_decimal("discountAmount"),
        shipping_method=session.metadata.get("shippingMethod") or "free",
        payment_info=PaymentInfo(
            session_id=session_id,
            amount=session.charged_amount,
            currency=session.currency,
            payment_status=session.payment_status or "",
        ),
        order_items_from_metadata=session.metadata_order_items(),
    )


class PaymentCompletionResolver:
    """
    Resuelve la URL de retorno del proveedor de pagos en un pedido.
    """

    def __init__(
        self,
        payments: PaymentAPI,
        orders: OrderAPI,
        navigator: Navigator,
        token_store: TokenStore,
        redirect_delay: Optional[float] = None,
    ):
        self.payments = payments
        self.orders = orders
        self.navigator = navigator
        self.token_store = token_store
        self.redirect_delay = (
            redirect_delay if redirect_delay is not None else settings.CONFIRMATION_REDIRECT_DELAY
        )

        self.order: Optional[Order] = None
        self.loading = False
        self.error: Optional[str] = None
        self.redirect_task: Optional[asyncio.Task] = None
        self._in_flight = False

    async def resolve(self, return_url: str) -> ResolutionResult:
        """
        Procesa la URL de retorno (que trae ?session_id=...).

        Nunca lanza: los fallos se devuelven en ResolutionResult.error con
        retry_path apuntando al checkout.
        """
        if self.order is not None:
            return ResolutionResult(order=self.order, from_cache=True)

        if self._in_flight:
            logger.debug("resolve() ignorado: ya hay una resolución en curso")
            return ResolutionResult(ignored=True)

        session_id = get_query_param(return_url, "session_id")
        if not session_id:
            return self._fail(MissingSessionError())

        if not self.token_store.is_authenticated():
            return self._fail(StorefrontError("Please login to complete order.", code="NOT_AUTHENTICATED"))

        self._in_flight = True
        self.loading = True
        self.error = None
        try:
            order = await self._create_order(session_id)
        except asyncio.CancelledError:
            raise
        except OrderCreationError as e:
            logger.error(f"Pago capturado pero el pedido no se creó (sesión {session_id}): {e.message}")
            return self._fail(e)
        except Exception as e:
            logger.warning(f"No se pudo finalizar la sesión {session_id}: {e}")
            return self._fail(e)
        finally:
            self._in_flight = False

        self.order = order
        self.loading = False
        self._confirm(session_id, order)
        return ResolutionResult(order=order)

    async def _create_order(self, session_id: str) -> Order:
        session = await self.payments.get_session(session_id)
        if not session.is_paid:
            raise PaymentNotCompletedError(session.payment_status)

        request = build_order_request(session_id, session)
        order = await self.orders.create_order(request)
        logger.info(f"Pedido {order.order_number or order.id} creado para la sesión {session_id}")
        return order

    def _confirm(self, session_id: str, order: Order) -> None:
        self.navigator.replace_state(build_path(settings.ORDER_SUCCESS_PATH, session_id=session_id))
        self.redirect_task = asyncio.create_task(self._redirect_to_order(order))

    async def _redirect_to_order(self, order: Order) -> None:
        await asyncio.sleep(self.redirect_delay)
        self.navigator.navigate(
            settings.ORDER_PATH_TEMPLATE.format(order_id=order.id),
            replace=True,
            state={"order": order},
        )

    def _fail(self, error: Exception) -> ResolutionResult:
        self.loading = False
        self.error = user_message(error) or "An error occurred while processing your order."
        return ResolutionResult(error=self.error, retry_path=settings.CHECKOUT_PATH)

    def cancel(self) -> None:
        """Cancela la redirección pendiente (la vista se desmonta)."""
        if self.redirect_task is not None and not self.redirect_task.done():
            self.redirect_task.cancel()
