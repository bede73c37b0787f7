# client/storefront/core/formatting.py
"""
Utilidades de formato para importes y teléfonos.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Any) -> Decimal:
    """Convierte un número JSON a Decimal sin arrastrar el error binario del float."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Redondea a 2 decimales (medio hacia arriba, como toFixed)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def money_to_float(value: Number) -> float:
    """Importe listo para serializar en JSON."""
    return float(round_money(value))


def format_money(value: Number) -> str:
    """Formato de visualización: $1,234.56"""
    return f"${round_money(value):,.2f}"


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def format_phone_number(phone: str) -> str:
    """Formato +1 (000) 000-0000 para números de 10 u 11 dígitos."""
    if not phone:
        return ""
    cleaned = digits_only(phone)
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+1 ({cleaned[1:4]}) {cleaned[4:7]}-{cleaned[7:]}"
    if len(cleaned) == 10:
        return f"+1 ({cleaned[0:3]}) {cleaned[3:6]}-{cleaned[6:]}"
    return phone
