# client/storefront/core/config.py
"""
Este archivo contiene la configuración del cliente de la tienda.
"""

from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Apunta al directorio 'client/'
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    """
    Configuración del cliente usando Pydantic BaseSettings.
    Variables sensibles desde .env, defaults seguros para el resto.
    """
    # Configuración general del proyecto
    BASE_DIR: Path = BASE_DIR
    PROJECT_NAME: str = "Storefront Client"
    PROJECT_VERSION: str = "0.1.0"

    # API remota - Del .env con defaults de desarrollo
    API_BASE_URL: str = "http://localhost:5000/api"
    FETCH_TIMEOUT: float = 10.0  # segundos

    # Token de acceso - Opcional, normalmente lo aporta el login
    ACCESS_TOKEN: Optional[str] = None

    # Moneda en la que se expresan carrito, sesión de pago y pedido
    CURRENCY: str = "usd"

    # Reglas del carrito
    MIN_ITEM_QUANTITY: int = 1
    MAX_ITEM_QUANTITY: int = 10
    ACCESSORY_CATEGORY: str = "accessories"

    # Envío
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("75.00")
    STANDARD_SHIPPING_FEE: Decimal = Decimal("9.99")
    EXPRESS_SHIPPING_FEE: Decimal = Decimal("20.99")

    # Finalización del pedido
    DEFAULT_PAYMENT_METHOD: str = "card"
    DEFAULT_RECIPIENT_PHONE: str = "0000000000"
    CONFIRMATION_REDIRECT_DELAY: float = 2.0  # segundos
    SESSION_AMOUNT_IN_MINOR_UNITS: bool = False

    # Rutas de la tienda
    CART_PATH: str = "/cart"
    CHECKOUT_PATH: str = "/checkout"
    ORDER_SUCCESS_PATH: str = "/order/success"
    ORDER_PATH_TEMPLATE: str = "/order/{order_id}"

    # Logging - Defaults seguros
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

# Instancia global de la configuración
settings = Settings()
