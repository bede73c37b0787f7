# client/storefront/schemas/cart_schema.py
"""
Esquemas Pydantic para la gestión del carrito de la compra.

Los nombres de campo del backend (camelCase y "_id") se exponen mediante
alias; en Python se trabaja con snake_case. Los modelos son inmutables: las
mutaciones devuelven copias nuevas, lo que permite conservar el estado
anterior mientras una actualización optimista está en vuelo.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from storefront.core.config import settings
from storefront.core.formatting import money_to_float, round_money, to_decimal


# ========================================
# ESQUEMAS AUXILIARES
# ========================================

class ProductRef(BaseModel):
    """Referencia al producto de un item (lo que el backend 'popula')."""
    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    sku: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# ========================================
# ITEM DEL CARRITO
# ========================================

class CartItem(BaseModel):
    """
    Línea del carrito.

    El precio se captura al añadir el producto y no se recalcula desde el
    catálogo; solo cambian cantidad, color y talla.
    """
    id: str = Field(..., alias="_id")
    product: ProductRef
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)
    color: Optional[str] = None
    size: Optional[str] = None
    final_sale: bool = Field(default=False, alias="finalSale")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("product", mode="before")
    @classmethod
    def accept_bare_product_id(cls, value: Any) -> Any:
        """El backend puede devolver el producto sin popular (solo su id)."""
        if isinstance(value, str):
            return {"_id": value}
        return value

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("color", "size", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def subtotal(self) -> Decimal:
        return round_money(self.price * self.quantity)

    @property
    def is_accessory(self) -> bool:
        category = (self.product.category or "").lower()
        return category == settings.ACCESSORY_CATEGORY.lower()

    def missing_options(self) -> List[str]:
        """Opciones pendientes: los accesorios solo necesitan color."""
        missing = []
        if not self.color:
            missing.append("color")
        if not self.is_accessory and not self.size:
            missing.append("size")
        return missing

    def with_quantity(self, quantity: int) -> "CartItem":
        return self.model_copy(update={"quantity": quantity})

    def to_payload(self) -> Dict[str, Any]:
        """Representación JSON del item tal y como la espera el backend."""
        return {
            "_id": self.id,
            "product": self.product.model_dump(by_alias=True, exclude_none=True),
            "quantity": self.quantity,
            "price": money_to_float(self.price),
            "color": self.color,
            "size": self.size,
            "finalSale": self.final_sale,
        }

    def to_metadata_item(self) -> Dict[str, Any]:
        """Forma compacta que viaja en los metadatos de la sesión de pago."""
        return {
            "productId": self.product.id,
            "productName": self.product.name or "Product",
            "productSku": self.product.sku or "",
            "productImage": self.product.image or "",
            "quantity": self.quantity,
            "price": money_to_float(self.price),
            "color": self.color or "",
            "size": self.size or "",
        }


# ========================================
# CARRITO
# ========================================

def _compute_totals(items: Sequence[Any]) -> Dict[str, Any]:
    """Calcula totalAmount y totalItems en una sola pasada."""
    total_amount = Decimal("0")
    total_items = 0
    for item in items:
        if isinstance(item, CartItem):
            price, quantity = item.price, item.quantity
        else:
            price, quantity = to_decimal(item.get("price")), int(item.get("quantity", 0))
        total_amount += price * quantity
        total_items += quantity
    return {"total_amount": round_money(total_amount), "total_items": total_items}


class Cart(BaseModel):
    """
    Estado completo del carrito de un usuario.

    Invariante: total_amount == Σ price × quantity y
    total_items == Σ quantity.
    """
    id: Optional[str] = Field(default=None, alias="_id")
    items: List[CartItem] = Field(default_factory=list)
    total_amount: Decimal = Field(default=Decimal("0.00"), alias="totalAmount")
    total_items: int = Field(default=0, alias="totalItems")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def fill_missing_totals(cls, data: Any) -> Any:
        """Si el backend omite los totales, se derivan de los items."""
        if not isinstance(data, dict):
            return data
        has_amount = "totalAmount" in data or "total_amount" in data
        has_items = "totalItems" in data or "total_items" in data
        if has_amount and has_items:
            return data
        totals = _compute_totals(data.get("items") or [])
        data = dict(data)
        if not has_amount:
            data["total_amount"] = totals["total_amount"]
        if not has_items:
            data["total_items"] = totals["total_items"]
        return data

    @field_validator("total_amount", mode="before")
    @classmethod
    def parse_total_amount(cls, value: Any) -> Decimal:
        return round_money(value)

    @classmethod
    def empty(cls) -> "Cart":
        return cls(items=[], total_amount=Decimal("0.00"), total_items=0)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> Decimal:
        return self.total_amount

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def recalculated(self, items: Sequence[CartItem]) -> "Cart":
        """Nuevo carrito con estos items y los totales recalculados."""
        totals = _compute_totals(items)
        return self.model_copy(update={"items": list(items), **totals})

    def with_item_quantity(self, item_id: str, quantity: int) -> "Cart":
        return self.recalculated(
            [item.with_quantity(quantity) if item.id == item_id else item for item in self.items]
        )

    def without_item(self, item_id: str) -> "Cart":
        return self.recalculated([item for item in self.items if item.id != item_id])

    def items_needing_options(self) -> List[CartItem]:
        return [item for item in self.items if item.missing_options()]

    def amount_to_free_shipping(self) -> Decimal:
        """Lo que falta para desbloquear el envío gratuito (0 si ya aplica)."""
        remaining = settings.FREE_SHIPPING_THRESHOLD - self.total_amount
        return round_money(max(remaining, Decimal("0")))
