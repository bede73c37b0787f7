# client/storefront/core/navigation.py
"""
Abstracción del historial de navegación.

Modela las tres operaciones que necesita el flujo de compra:
- navigate(path, replace=...): navegación interna, apilando o reemplazando
- replace_state(path): reescribe la entrada actual sin navegar
- redirect_external(url): salida hacia el checkout alojado del proveedor

Patrón para redirecciones externas de un solo uso: al volver, se reemplaza
(no se apila) la entrada del historial, de modo que "atrás" no puede
devolver al usuario a una sesión de pago ya consumida.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlsplit

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """Una entrada del historial."""
    path: str
    state: Dict[str, Any] = field(default_factory=dict)
    external: bool = False


class Navigator:
    """
    Historial en memoria con semántica push/replace.

    Se usa tanto en el CLI como en los tests; una interfaz gráfica puede
    sustituirlo por una implementación que delegue en su propio router.
    """

    def __init__(self, initial_path: str = "/") -> None:
        self._entries: List[HistoryEntry] = [HistoryEntry(path=initial_path)]
        self._index = 0

    # ========================================
    # CONSULTA
    # ========================================

    @property
    def current(self) -> HistoryEntry:
        return self._entries[self._index]

    @property
    def current_path(self) -> str:
        return self.current.path

    @property
    def entries(self) -> List[HistoryEntry]:
        """Entradas alcanzables (descarta las que quedaron 'adelante')."""
        return list(self._entries[: self._index + 1])

    def can_go_back(self) -> bool:
        return self._index > 0

    # ========================================
    # NAVEGACIÓN
    # ========================================

    def navigate(self, path: str, replace: bool = False, state: Optional[Dict[str, Any]] = None) -> None:
        entry = HistoryEntry(path=path, state=state or {})
        if replace:
            self._entries[self._index] = entry
        else:
            # Apilar descarta el historial 'adelante', como en un navegador
            del self._entries[self._index + 1:]
            self._entries.append(entry)
            self._index += 1
        logger.debug(f"Navegación {'replace' if replace else 'push'} -> {path}")

    def replace_state(self, path: str, state: Optional[Dict[str, Any]] = None) -> None:
        """Reescribe la entrada actual (equivalente a history.replaceState)."""
        self._entries[self._index] = HistoryEntry(path=path, state=state or {})

    def redirect_external(self, url: str) -> None:
        """Abandona la aplicación hacia una URL externa (checkout del proveedor)."""
        logger.info(f"Redirigiendo a checkout externo: {url[:60]}")
        del self._entries[self._index + 1:]
        self._entries.append(HistoryEntry(path=url, external=True))
        self._index += 1

    def back(self) -> HistoryEntry:
        if self._index > 0:
            self._index -= 1
        return self.current


def build_path(path: str, **query: Any) -> str:
    """Compone una ruta con query string, ignorando valores vacíos."""
    params = {key: value for key, value in query.items() if value not in (None, "")}
    if not params:
        return path
    return f"{path}?{urlencode(params)}"


def get_query_param(url: str, name: str) -> Optional[str]:
    """Extrae un parámetro de la query string de una URL o ruta."""
    values = parse_qs(urlsplit(url).query).get(name)
    if not values:
        return None
    return values[0] or None
