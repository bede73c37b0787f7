# client/storefront/schemas/order_schema.py
"""
Se encarga de definir los esquemas Pydantic para el pedido (Order) y la
petición de creación que lo produce.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.core.formatting import money_to_float, round_money, to_decimal


class OrderStatus(str, enum.Enum):
    """Define los posibles estados de un pedido."""
    PENDING = "pending"
    PAID = "paid"
    PREPARING = "preparing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    """Estado del cobro asociado a un pedido."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ShippingInfo(BaseModel):
    """Foto de los datos de envío tomada de la sesión de pago, no del carrito."""
    recipient_name: str = Field(..., alias="recipientName", min_length=1)
    recipient_phone: str = Field(..., alias="recipientPhone")
    email: str = ""
    address: str = Field(..., min_length=1)
    apartment: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = Field(default="", alias="postalCode")
    delivery_request: str = Field(default="", alias="deliveryRequest")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class OrderItem(BaseModel):
    """Línea del pedido con precio y subtotal del momento de la compra."""
    product: Optional[str] = None
    product_name: str = Field(default="Product", alias="productName")
    product_sku: str = Field(default="", alias="productSku")
    product_image: str = Field(default="", alias="productImage")
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)
    subtotal: Optional[Decimal] = None
    color: Optional[str] = None
    size: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("product", mode="before")
    @classmethod
    def product_id(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("_id")
        return value

    @field_validator("price", "subtotal", mode="before")
    @classmethod
    def parse_money(cls, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        return round_money(value)


class PaymentInfo(BaseModel):
    """Bloque de confirmación del pago; session_id es la clave de idempotencia."""
    session_id: str = Field(..., alias="sessionId", min_length=1)
    amount: Decimal
    currency: str
    payment_status: str = Field(..., alias="paymentStatus")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal:
        return round_money(value)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "amount": money_to_float(self.amount),
            "currency": self.currency,
            "paymentStatus": self.payment_status,
        }


class OrderCreate(BaseModel):
    """Cuerpo de POST /orders."""
    shipping_info: ShippingInfo
    payment_method: str = "card"
    shipping_fee: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    shipping_method: str = "free"
    payment_info: PaymentInfo
    order_items_from_metadata: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(frozen=True)

    @property
    def idempotency_key(self) -> str:
        return self.payment_info.session_id

    def to_payload(self) -> Dict[str, Any]:
        return {
            "shippingInfo": self.shipping_info.model_dump(by_alias=True),
            "paymentMethod": self.payment_method,
            "shippingFee": money_to_float(self.shipping_fee),
            "discountAmount": money_to_float(self.discount_amount),
            "shippingMethod": self.shipping_method,
            "paymentInfo": self.payment_info.to_payload(),
            "orderItemsFromMetadata": self.order_items_from_metadata,
        }


class Order(BaseModel):
    """
    Pedido persistido. Inmutable en el cliente; solo el backend cambia su
    estado durante la preparación y el envío.
    """
    id: str = Field(..., alias="_id")
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    payment_method: str = Field(default="card", alias="paymentMethod")
    shipping_info: Optional[ShippingInfo] = Field(default=None, alias="shippingInfo")
    items: List[OrderItem] = Field(default_factory=list)
    items_total: Decimal = Field(default=Decimal("0.00"), alias="itemsTotal")
    shipping_fee: Decimal = Field(default=Decimal("0.00"), alias="shippingFee")
    shipping_method: str = Field(default="free", alias="shippingMethod")
    discount_amount: Decimal = Field(default=Decimal("0.00"), alias="discountAmount")
    total_amount: Decimal = Field(default=Decimal("0.00"), alias="totalAmount")
    payment_info: Dict[str, Any] = Field(default_factory=dict, alias="paymentInfo")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("items_total", "shipping_fee", "discount_amount", "total_amount", mode="before")
    @classmethod
    def parse_money(cls, value: Any) -> Decimal:
        return round_money(to_decimal(value))

    @property
    def session_id(self) -> Optional[str]:
        return self.payment_info.get("sessionId")
