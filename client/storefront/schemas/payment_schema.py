# client/storefront/schemas/payment_schema.py
"""
Esquemas Pydantic para el método de envío y la sesión de pago externa.
"""

import enum
import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.core.config import settings
from storefront.core.formatting import money_to_float, round_money, to_decimal

logger = logging.getLogger(__name__)


# ========================================
# MÉTODO DE ENVÍO
# ========================================

class ShippingMethod(str, enum.Enum):
    """Métodos de envío, mutuamente excluyentes."""
    FREE = "free"
    STANDARD = "standard"
    EXPRESS = "express"

    @property
    def fee(self) -> Decimal:
        if self is ShippingMethod.STANDARD:
            return settings.STANDARD_SHIPPING_FEE
        if self is ShippingMethod.EXPRESS:
            return settings.EXPRESS_SHIPPING_FEE
        return Decimal("0.00")

    @property
    def label(self) -> str:
        return {
            ShippingMethod.FREE: "Free Shipping",
            ShippingMethod.STANDARD: "Standard Shipping",
            ShippingMethod.EXPRESS: "Express Shipping",
        }[self]

    def is_available(self, subtotal: Decimal) -> bool:
        """El envío gratuito solo se ofrece desde FREE_SHIPPING_THRESHOLD."""
        if self is ShippingMethod.FREE:
            return to_decimal(subtotal) >= settings.FREE_SHIPPING_THRESHOLD
        return True


class ShippingOption(BaseModel):
    """Opción de envío tal y como se presenta al usuario."""
    method: ShippingMethod
    label: str
    fee: Decimal
    available: bool

    model_config = ConfigDict(frozen=True)


# ========================================
# SOLICITUD DE SESIÓN DE PAGO
# ========================================

class CheckoutSessionRequest(BaseModel):
    """Cuerpo de POST /payment/create-checkout-session."""
    amount: Decimal
    currency: str = Field(default_factory=lambda: settings.CURRENCY)
    metadata: Dict[str, str] = Field(default_factory=dict)
    order_items: List[Dict[str, Any]] = Field(default_factory=list)
    shipping_fee: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")

    def to_payload(self) -> Dict[str, Any]:
        # El importe va en la misma unidad que el carrito; la conversión a
        # unidades menores es cosa del endpoint de sesión.
        return {
            "amount": money_to_float(self.amount),
            "currency": self.currency,
            "metadata": self.metadata,
            "shippingInfo": {},
            "orderItems": self.order_items,
            "shippingFee": money_to_float(self.shipping_fee),
            "discountAmount": money_to_float(self.discount_amount),
        }


class CheckoutSessionResponse(BaseModel):
    """Respuesta correcta de creación de sesión."""
    success: bool = True
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    url: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ========================================
# SESIÓN DE PAGO RECUPERADA
# ========================================

class Address(BaseModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class CustomerDetails(BaseModel):
    """Lo enviado en el formulario del proveedor (o el perfil que este rellenó)."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class ShippingDetails(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class PaymentSession(BaseModel):
    """Sesión de pago tal y como la devuelve GET /payment/session/{id}."""
    id: Optional[str] = None
    payment_status: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    shipping_details: Optional[ShippingDetails] = None
    amount_total: Decimal = Decimal("0")
    currency: str = Field(default_factory=lambda: settings.CURRENCY)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("amount_total", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return value or {}

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def charged_amount(self) -> Decimal:
        """Importe cobrado en unidades mayores."""
        if settings.SESSION_AMOUNT_IN_MINOR_UNITS:
            return round_money(self.amount_total / 100)
        return round_money(self.amount_total)

    def metadata_decimal(self, key: str) -> Decimal:
        try:
            return round_money(self.metadata.get(key) or "0")
        except ArithmeticError:
            logger.warning(f"Metadato '{key}' no numérico en la sesión {self.id}: {self.metadata.get(key)!r}")
            return Decimal("0.00")

    def metadata_order_items(self) -> Optional[List[Dict[str, Any]]]:
        """Items del pedido guardados al crear la sesión (JSON o lista)."""
        raw = self.metadata.get("orderItems")
        if not raw:
            return None
        if isinstance(raw, list):
            return raw
        try:
            items = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"orderItems ilegible en los metadatos de la sesión {self.id}")
            return None
        return items if isinstance(items, list) else None
