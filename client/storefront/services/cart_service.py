# client/storefront/services/cart_service.py
"""
Servicio de Carrito de Compras del cliente.

El carrito autoritativo vive en el servidor. Este servicio mantiene una
copia local que se actualiza de forma optimista (primero en local, después
se confirma en remoto) y que, ante cualquier fallo, se descarta y se vuelve
a pedir al servidor.

Componentes:
- OptimisticCartStore: estado del carrito y sus mutaciones
- CartBadge: contador de la cabecera, sincronizado por el bus de eventos
- CartView: ciclo de vida de la página del carrito (carga cancelable)
- CartPage: comprobación previa antes de pasar al checkout
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from storefront.api.cart_api import CartAPI
from storefront.core.config import settings
from storefront.core.events import CART_CHANGED, EventBus, event_bus as default_event_bus
from storefront.core.exceptions import user_message
from storefront.core.navigation import Navigator
from storefront.core.security import TokenStore
from storefront.schemas.cart_schema import Cart, CartItem

logger = logging.getLogger(__name__)

CartObserver = Callable[[Optional[Cart]], None]


class OptimisticCartStore:
    """
    Estado local del carrito con actualizaciones optimistas.

    Las mutaciones no se serializan: si hay varias en vuelo, la última
    respuesta en llegar es la que queda.
    """

    def __init__(self, cart_api: CartAPI, bus: Optional[EventBus] = None):
        self.cart_api = cart_api
        self.bus = bus or default_event_bus
        self.cart: Optional[Cart] = None
        self.loading: bool = False
        self.error: Optional[str] = None
        self._observers: List[CartObserver] = []

    # ========================================
    # OBSERVADORES
    # ========================================

    def subscribe(self, callback: CartObserver) -> Callable[[], None]:
        """Registra un observador de cambios locales (optimistas y confirmados)."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _set_cart(self, cart: Optional[Cart]) -> None:
        self.cart = cart
        for observer in list(self._observers):
            try:
                observer(cart)
            except Exception:
                logger.exception("Observador del carrito falló")

    def _publish_change(self, cart: Cart) -> None:
        self.bus.publish(CART_CHANGED, {"total_items": cart.total_items})

    # ========================================
    # LECTURA
    # ========================================

    async def fetch_cart(self) -> Optional[Cart]:
        """Pide el carrito al servidor y lo adopta completo."""
        self.loading = True
        try:
            cart = await self.cart_api.get_cart()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error cargando el carrito: {e}")
            self.error = user_message(e)
            return self.cart
        finally:
            self.loading = False

        self.error = None
        self._set_cart(cart)
        return cart

    def items_needing_options(self) -> List[CartItem]:
        if self.cart is None:
            return []
        return self.cart.items_needing_options()

    def amount_to_free_shipping(self):
        cart = self.cart or Cart.empty()
        return cart.amount_to_free_shipping()

    # ========================================
    # MUTACIONES
    # ========================================

    async def _apply_optimistic(
        self,
        mutate: Callable[[Cart], Cart],
        remote_call: Callable[[], Awaitable[Cart]],
        description: str,
    ) -> Optional[Cart]:
        """
        Aplica la mutación en local, la confirma en remoto y concilia.

        Returns:
            Cart: el carrito del servidor si la confirmación tuvo éxito
            None: si falló (el estado local vuelve al último carrito confirmado
                  y se recarga del servidor)
        """
        if self.cart is None:
            return None

        previous = self.cart
        self._set_cart(mutate(previous))

        try:
            server_cart = await remote_call()
        except asyncio.CancelledError:
            self._set_cart(previous)
            raise
        except Exception as e:
            logger.warning(f"Fallo al {description}; se recarga el carrito del servidor: {e}")
            # Si la recarga también falla, queda el último carrito confirmado
            self._set_cart(previous)
            await self.fetch_cart()
            self.error = user_message(e)
            return None

        self._set_cart(server_cart)
        self._publish_change(server_cart)
        logger.info(f"Carrito actualizado ({description}): {server_cart.total_items} unidades")
        return server_cart

    async def update_quantity(self, item_id: str, new_quantity: int) -> Optional[Cart]:
        """Cambia la cantidad de un item. Fuera de [1, 10] no hace nada."""
        if new_quantity < settings.MIN_ITEM_QUANTITY or new_quantity > settings.MAX_ITEM_QUANTITY:
            return None
        if self.cart is None:
            return None

        return await self._apply_optimistic(
            lambda cart: cart.with_item_quantity(item_id, new_quantity),
            lambda: self.cart_api.update_item_quantity(item_id, new_quantity),
            f"actualizar cantidad del item {item_id}",
        )

    async def remove_item(self, item_id: str) -> Optional[Cart]:
        return await self._apply_optimistic(
            lambda cart: cart.without_item(item_id),
            lambda: self.cart_api.remove_item(item_id),
            f"eliminar el item {item_id}",
        )

    async def update_item_options(
        self, item_id: str, color: Optional[str] = None, size: Optional[str] = None
    ) -> Optional[Cart]:
        """Cambia color/talla. No es optimista: se espera al servidor."""
        try:
            server_cart = await self.cart_api.update_item_options(item_id, color, size)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Fallo al actualizar opciones del item {item_id}: {e}")
            await self.fetch_cart()
            self.error = user_message(e)
            return None

        self._set_cart(server_cart)
        self._publish_change(server_cart)
        return server_cart


# ========================================
# CONTADOR DE LA CABECERA
# ========================================

class CartBadge:
    """
    Número de unidades del carrito mostrado en la cabecera.

    Cada refresco cancela el anterior, y unmount() cancela el que siga en
    vuelo: una respuesta antigua nunca pisa un estado más reciente.
    """

    def __init__(self, cart_api: CartAPI, token_store: TokenStore, bus: Optional[EventBus] = None):
        self.cart_api = cart_api
        self.token_store = token_store
        self.bus = bus or default_event_bus
        self.count: int = 0
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> asyncio.Task:
        if self._unsubscribe is None:
            self._unsubscribe = self.bus.subscribe(CART_CHANGED, lambda payload: self.refresh())
        return self.refresh()

    def refresh(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._load_count())
        return self._task

    def unmount(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _load_count(self) -> None:
        if not self.token_store.is_authenticated():
            self.count = 0
            return
        try:
            cart = await self.cart_api.get_cart()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"No se pudo obtener el contador del carrito: {e}")
            self.count = 0
            return
        self.count = cart.total_items


# ========================================
# PÁGINA DEL CARRITO
# ========================================

class CartView:
    """Carga inicial del carrito ligada al montaje de la vista."""

    def __init__(self, store: OptimisticCartStore):
        self.store = store
        self._task: Optional[asyncio.Task] = None

    def mount(self) -> asyncio.Task:
        # Un nuevo montaje sustituye a la carga anterior que siga en vuelo
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self.store.fetch_cart())
        return self._task

    def unmount(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class CartPage:
    """Acciones de la página del carrito que no mutan el carrito."""

    def __init__(self, store: OptimisticCartStore, navigator: Navigator):
        self.store = store
        self.navigator = navigator
        self.items_needing_options: List[CartItem] = []

    def proceed_to_checkout(self) -> bool:
        """
        Navega al checkout solo si ningún item tiene opciones pendientes.
        Si las tiene, quedan en items_needing_options para pedírselas al usuario.
        """
        self.items_needing_options = self.store.items_needing_options()
        if self.items_needing_options:
            count = len(self.items_needing_options)
            logger.info(f"Checkout bloqueado: {count} item(s) sin opciones")
            return False
        self.navigator.navigate(settings.CHECKOUT_PATH)
        return True
