# client/storefront/core/logging_config.py
"""
Configuración del logging de la aplicación.

Cada módulo obtiene su propio logger con logging.getLogger(__name__);
aquí solo se fija el nivel y el formato comunes a partir de settings.
"""

import logging
from typing import Optional

from storefront.core.config import settings


def setup_logging(level: Optional[str] = None) -> None:
    """Inicializa el logging raíz con el nivel y formato configurados."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
    )
    # httpx registra cada petición en INFO; lo bajamos para no ensuciar la salida
    logging.getLogger("httpx").setLevel(logging.WARNING)
