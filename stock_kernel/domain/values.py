"""
Domain enumerations and small value helpers for the stock kernel.

Enums subclass ``str`` so they compare equal to the raw strings stored in
``String`` columns and round-trip through JSON unchanged.
"""

from decimal import Decimal
from enum import Enum

from stock_kernel.exceptions import ValidationError


class SkuStatus(str, Enum):
    """Lifecycle of a SKU.  ARCHIVED SKUs still resolve for movements."""

    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class MovementType(str, Enum):
    """Direction of a stock movement.

    IN and OUT carry a positive quantity; ADJ carries a signed delta.
    """

    IN = "IN"
    OUT = "OUT"
    ADJ = "ADJ"


class ReferenceType(str, Enum):
    """Business cause of a stock movement."""

    PURCHASE = "PURCHASE"
    SALE = "SALE"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"


class OrderStatus(str, Enum):
    """Order lifecycle.  See stock_kernel.domain.order_workflow."""

    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PICKING = "PICKING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class SalesChannel(str, Enum):
    POS = "POS"
    B2B = "B2B"
    ONLINE = "ONLINE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    CREDIT = "CREDIT"


def signed_delta(movement_type: MovementType, quantity: Decimal) -> Decimal:
    """
    Translate a submitted quantity into the delta applied to stock.

    IN adds ``quantity``, OUT subtracts it, ADJ applies it as given.
    """
    if movement_type == MovementType.IN:
        return quantity
    if movement_type == MovementType.OUT:
        return -quantity
    return quantity


# SKU attribute values: a flat mapping of str -> str | int | float | bool.
AttributeValue = str | int | float | bool


def normalize_attributes(attributes: dict | None) -> dict[str, AttributeValue]:
    """
    Validate a SKU attribute bag.

    Raises:
        ValidationError: On non-string keys or values outside the tagged
            union (nested mappings, lists, None).
    """
    if not attributes:
        return {}
    if not isinstance(attributes, dict):
        raise ValidationError("attributes", "must be a mapping")

    normalized: dict[str, AttributeValue] = {}
    for key, value in attributes.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("attributes", f"invalid attribute name {key!r}")
        if isinstance(value, Decimal):
            value = float(value) if value != value.to_integral_value() else int(value)
        if not isinstance(value, (str, int, float, bool)):
            raise ValidationError(
                f"attributes.{key}",
                f"unsupported value type {type(value).__name__}",
            )
        normalized[key.strip()] = value
    return normalized


def normalize_code(value: str, field: str = "code") -> str:
    """Trim and upper-case an identifier code."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "must be a non-empty string")
    return value.strip().upper()
