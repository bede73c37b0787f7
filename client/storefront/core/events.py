# client/storefront/core/events.py
"""
Canal publicación/suscripción para el estado compartido de la interfaz.

Sustituye a los eventos globales del navegador ("cartUpdated",
"favoritesUpdated"): las operaciones que mutan el carrito publican en el bus
y las vistas independientes (p. ej. el contador de la cabecera) se suscriben.

Uso:
    from storefront.core.events import event_bus, CART_CHANGED

    unsubscribe = event_bus.subscribe(CART_CHANGED, lambda payload: ...)
    event_bus.publish(CART_CHANGED, {"total_items": 3})
    unsubscribe()
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CART_CHANGED = "cart_changed"
FAVORITES_CHANGED = "favorites_changed"

Listener = Callable[[Optional[Dict[str, Any]]], None]


class EventBus:
    """
    Bus de eventos síncrono y en memoria.

    Los listeners se llaman en el orden de suscripción. Un listener que falla
    se registra en el log pero no interrumpe la operación que publicó.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Registra un listener y devuelve la función para darlo de baja."""
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(event, listener)

        return unsubscribe

    def unsubscribe(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def publish(self, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """
        Notifica a todos los suscriptores del evento.

        Returns:
            int: número de listeners notificados correctamente
        """
        delivered = 0
        # Copia: un listener puede darse de baja mientras se recorre la lista
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
                delivered += 1
            except Exception:
                logger.exception(f"Listener de '{event}' falló al procesar el evento")
        logger.debug(f"Evento '{event}' entregado a {delivered} listener(s)")
        return delivered

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def clear(self) -> None:
        self._listeners.clear()


# Instancia global compartida por todas las vistas
event_bus = EventBus()
