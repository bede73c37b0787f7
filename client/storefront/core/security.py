# client/storefront/core/security.py
"""
Gestión del token de acceso del usuario autenticado.

El almacenamiento real de la sesión queda fuera del cliente; aquí solo se
guarda el token bearer en memoria y se lee el id de usuario de su payload.
"""

import base64
import binascii
import json
import logging
from typing import Optional

from storefront.core.config import settings
from storefront.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class TokenStore:
    """Contenedor en memoria del token bearer."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None

    def is_authenticated(self) -> bool:
        return bool(self._token)


def decode_user_id(token: Optional[str]) -> str:
    """
    Obtiene el campo userId del payload de un JWT.

    No verifica la firma: esa comprobación es del servidor. El cliente solo
    necesita el id para adjuntarlo a los metadatos de la sesión de pago.
    Devuelve "" si no hay token.
    """
    if not token:
        return ""

    parts = token.split(".")
    if len(parts) < 2:
        raise AuthenticationError("Invalid token", status_code=401)

    payload = parts[1]
    # base64url sin relleno
    payload += "=" * (-len(payload) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError) as e:
        logger.warning(f"No se pudo decodificar el payload del token: {e}")
        raise AuthenticationError("Invalid token", status_code=401) from e

    return str(data.get("userId", "")) if isinstance(data, dict) else ""


# Token por defecto, tomado de la configuración si existe
token_store = TokenStore(settings.ACCESS_TOKEN)
