"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    request specs coming in (ProductSpec, MovementRequest, OrderSpec, ...),
    filters for the read paths, and records going out (ProductRecord,
    MovementRecord, OrderRecord, ...).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked by selectors and the service facade only.

Invariants enforced:
    - Numeric inputs are coerced to Decimal on construction (floats through
      their shortest repr); non-finite or out-of-range values raise
      ValidationError with the offending field name.
    - Text inputs are length-checked; codes are trimmed and upper-cased.
    - Records are frozen; collections are tuples, attribute bags are
      read-only mappings.

Failure modes:
    - ValidationError on malformed input (field + reason).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from math import ceil
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Generic, Mapping, TypeVar
from uuid import UUID

from stock_kernel.db.types import to_decimal
from stock_kernel.domain.values import (
    MovementType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReferenceType,
    SalesChannel,
    SkuStatus,
    normalize_attributes,
    normalize_code,
)
from stock_kernel.exceptions import ValidationError

if TYPE_CHECKING:
    from stock_kernel.models.catalog import Product as ProductModel
    from stock_kernel.models.catalog import Sku as SkuModel
    from stock_kernel.models.catalog import VendorLink as VendorLinkModel
    from stock_kernel.models.order import Order as OrderModel
    from stock_kernel.models.order import OrderLine as OrderLineModel
    from stock_kernel.models.stock import StockLevel as StockLevelModel
    from stock_kernel.models.stock import StockMovement as StockMovementModel
    from stock_kernel.models.warehouse import Warehouse as WarehouseModel

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

MAX_PAGE_LIMIT = 100
DEFAULT_PAGE_LIMIT = 20


# =============================================================================
# Coercion helpers
# =============================================================================


def _decimal(
    value: Any,
    field_name: str,
    minimum: Decimal | None = None,
    maximum: Decimal | None = None,
) -> Decimal:
    try:
        result = to_decimal(value, field_name)
    except ValueError as exc:
        raise ValidationError(field_name, str(exc)) from exc
    if minimum is not None and result < minimum:
        raise ValidationError(field_name, f"must be >= {minimum}, got {result}")
    if maximum is not None and result > maximum:
        raise ValidationError(field_name, f"must be <= {maximum}, got {result}")
    return result


def _optional_decimal(value, field_name, minimum=None, maximum=None) -> Decimal | None:
    if value is None:
        return None
    return _decimal(value, field_name, minimum, maximum)


def _text(
    value: Any,
    field_name: str,
    max_length: int,
    required: bool = False,
) -> str | None:
    if value is None:
        if required:
            raise ValidationError(field_name, "is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")
    value = value.strip()
    if required and not value:
        raise ValidationError(field_name, "must not be empty")
    if len(value) > max_length:
        raise ValidationError(field_name, f"must be at most {max_length} characters")
    return value


def _enum(enum_cls, value: Any, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field_name, f"must be one of {allowed}") from exc


def _uuid(value: Any, field_name: str) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(field_name, f"not a valid UUID: {value!r}") from exc


def _set(obj, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


# =============================================================================
# Catalog inputs
# =============================================================================


@dataclass(frozen=True)
class VendorSpec:
    """A supplier of one SKU."""

    vendor_name: str
    vendor_sku: str
    vendor_id: UUID | None = None
    lead_time_days: int = 7
    last_cost: Decimal = ZERO
    is_preferred: bool = False

    def __post_init__(self) -> None:
        _set(self, "vendor_name", _text(self.vendor_name, "vendor_name", 200, True))
        _set(self, "vendor_sku", _text(self.vendor_sku, "vendor_sku", 100, True))
        _set(self, "vendor_id", _uuid(self.vendor_id, "vendor_id"))
        if isinstance(self.lead_time_days, bool) or not isinstance(self.lead_time_days, int):
            raise ValidationError("lead_time_days", "must be an integer")
        if self.lead_time_days < 0:
            raise ValidationError("lead_time_days", "must be >= 0")
        _set(self, "last_cost", _decimal(self.last_cost, "last_cost", ZERO))


@dataclass(frozen=True)
class SkuSpec:
    """
    A sellable variant of a product.

    ``code`` is optional; the catalog assigns one when omitted.
    ``initial_stock`` > 0 posts an opening movement on creation.
    """

    code: str | None = None
    barcode: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    cost: Decimal = ZERO
    retail_price: Decimal = ZERO
    wholesale_tier1: Decimal = ZERO
    wholesale_tier2: Decimal = ZERO
    status: SkuStatus = SkuStatus.ACTIVE
    vendors: tuple[VendorSpec, ...] = ()
    initial_stock: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.code is not None:
            code = _text(self.code, "code", 50)
            _set(self, "code", normalize_code(code, "code") if code else None)
        _set(self, "barcode", _text(self.barcode, "barcode", 64) or None)
        _set(self, "attributes", MappingProxyType(normalize_attributes(dict(self.attributes))))
        for name in ("cost", "retail_price", "wholesale_tier1", "wholesale_tier2"):
            _set(self, name, _decimal(getattr(self, name), name, ZERO))
        _set(self, "status", _enum(SkuStatus, self.status, "status"))
        _set(self, "vendors", tuple(self.vendors))
        _set(self, "initial_stock", _decimal(self.initial_stock, "initial_stock", ZERO))


@dataclass(frozen=True)
class ProductSpec:
    """Everything needed to create a product and its SKUs."""

    name: str
    skus: tuple[SkuSpec, ...]
    description: str | None = None
    category_id: UUID | None = None
    brand: str | None = None
    barcode: str | None = None
    tags: tuple[str, ...] = ()
    is_active: bool = True

    def __post_init__(self) -> None:
        _set(self, "name", _text(self.name, "name", 200, True))
        _set(self, "description", _text(self.description, "description", 1000))
        _set(self, "category_id", _uuid(self.category_id, "category_id"))
        _set(self, "brand", _text(self.brand, "brand", 100))
        _set(self, "barcode", _text(self.barcode, "barcode", 64) or None)
        _set(self, "tags", _normalize_tags(self.tags))
        _set(self, "skus", tuple(self.skus))


@dataclass(frozen=True)
class ProductPatch:
    """
    Partial product update.  ``None`` means "leave unchanged".

    When ``skus`` is given it is the complete desired SKU set: entries whose
    code matches an existing SKU update it, others are added, and existing
    SKUs that are absent get ARCHIVED.
    """

    name: str | None = None
    description: str | None = None
    category_id: UUID | None = None
    brand: str | None = None
    barcode: str | None = None
    tags: tuple[str, ...] | None = None
    is_active: bool | None = None
    skus: tuple[SkuSpec, ...] | None = None

    def __post_init__(self) -> None:
        if self.name is not None:
            _set(self, "name", _text(self.name, "name", 200, True))
        _set(self, "description", _text(self.description, "description", 1000))
        _set(self, "category_id", _uuid(self.category_id, "category_id"))
        _set(self, "brand", _text(self.brand, "brand", 100))
        _set(self, "barcode", _text(self.barcode, "barcode", 64) or None)
        if self.tags is not None:
            _set(self, "tags", _normalize_tags(self.tags))
        if self.skus is not None:
            _set(self, "skus", tuple(self.skus))


def _normalize_tags(tags) -> tuple[str, ...]:
    result: list[str] = []
    for tag in tags or ():
        if not isinstance(tag, str):
            raise ValidationError("tags", "tags must be strings")
        tag = tag.strip().lower()
        if tag and tag not in result:
            result.append(tag)
    return tuple(result)


# =============================================================================
# Warehouse inputs
# =============================================================================


@dataclass(frozen=True)
class WarehouseSpec:
    """
    A new warehouse.  ``None`` policy fields take the configured defaults
    (allow_negative_stock False, default_tax_rate 0.24, country Greece).
    """

    code: str
    name: str
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    allow_negative_stock: bool | None = None
    default_tax_rate: Decimal | None = None

    def __post_init__(self) -> None:
        code = _text(self.code, "code", 10, True)
        _set(self, "code", normalize_code(code, "code"))
        _set(self, "name", _text(self.name, "name", 100, True))
        _set(self, "address", _text(self.address, "address", 200))
        _set(self, "city", _text(self.city, "city", 100))
        _set(self, "postal_code", _text(self.postal_code, "postal_code", 20))
        _set(self, "country", _text(self.country, "country", 100))
        _set(
            self,
            "default_tax_rate",
            _optional_decimal(self.default_tax_rate, "default_tax_rate", ZERO, ONE),
        )


@dataclass(frozen=True)
class WarehousePatch:
    """Partial warehouse update.  The code cannot change."""

    name: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    allow_negative_stock: bool | None = None
    default_tax_rate: Decimal | None = None
    is_active: bool | None = None

    def __post_init__(self) -> None:
        if self.name is not None:
            _set(self, "name", _text(self.name, "name", 100, True))
        _set(self, "address", _text(self.address, "address", 200))
        _set(self, "city", _text(self.city, "city", 100))
        _set(self, "postal_code", _text(self.postal_code, "postal_code", 20))
        _set(self, "country", _text(self.country, "country", 100))
        _set(
            self,
            "default_tax_rate",
            _optional_decimal(self.default_tax_rate, "default_tax_rate", ZERO, ONE),
        )


# =============================================================================
# Ledger inputs
# =============================================================================


@dataclass(frozen=True)
class MovementRequest:
    """
    A request to append one stock movement.

    IN and OUT take a positive quantity; ADJ takes a signed delta.  Zero
    and sign rules are enforced by the ledger, not here.
    """

    product_id: UUID
    sku_code: str
    quantity: Decimal
    movement_type: MovementType
    warehouse_id: UUID
    reference_type: ReferenceType
    actor_id: UUID
    reference_id: str | None = None
    unit_cost: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _set(self, "product_id", _uuid(self.product_id, "product_id"))
        _set(self, "sku_code", normalize_code(self.sku_code, "sku_code"))
        _set(self, "quantity", _decimal(self.quantity, "quantity"))
        _set(self, "movement_type", _enum(MovementType, self.movement_type, "movement_type"))
        _set(self, "warehouse_id", _uuid(self.warehouse_id, "warehouse_id"))
        _set(self, "reference_type", _enum(ReferenceType, self.reference_type, "reference_type"))
        _set(self, "actor_id", _uuid(self.actor_id, "actor_id"))
        if self.reference_id is not None:
            _set(self, "reference_id", _text(str(self.reference_id), "reference_id", 64))
        _set(self, "unit_cost", _optional_decimal(self.unit_cost, "unit_cost", ZERO))
        _set(self, "notes", _text(self.notes, "notes", 500))
        for name in ("product_id", "warehouse_id", "actor_id"):
            if getattr(self, name) is None:
                raise ValidationError(name, "is required")
        if self.movement_type is None:
            raise ValidationError("movement_type", "is required")
        if self.reference_type is None:
            raise ValidationError("reference_type", "is required")


# =============================================================================
# Order inputs
# =============================================================================


@dataclass(frozen=True)
class OrderLineSpec:
    """
    One order line.  ``unit_price`` None takes the SKU price for the
    order's channel.
    """

    sku_code: str
    product_id: UUID
    quantity: Decimal
    unit_price: Decimal | None = None
    discount_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        _set(self, "sku_code", normalize_code(self.sku_code, "sku_code"))
        _set(self, "product_id", _uuid(self.product_id, "product_id"))
        quantity = _decimal(self.quantity, "quantity")
        if quantity <= ZERO:
            raise ValidationError("quantity", "must be greater than 0")
        _set(self, "quantity", quantity)
        _set(self, "unit_price", _optional_decimal(self.unit_price, "unit_price", ZERO))
        _set(
            self,
            "discount_percent",
            _decimal(self.discount_percent, "discount_percent", ZERO, HUNDRED),
        )


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    def __post_init__(self) -> None:
        _set(self, "name", _text(self.name, "customer.name", 200, True))
        email = _text(self.email, "customer.email", 200)
        if email and "@" not in email:
            raise ValidationError("customer.email", "invalid email format")
        _set(self, "email", email or None)
        _set(self, "phone", _text(self.phone, "customer.phone", 50) or None)
        _set(self, "address", _text(self.address, "customer.address", 500) or None)


@dataclass(frozen=True)
class OrderSpec:
    """A new order; created in DRAFT."""

    lines: tuple[OrderLineSpec, ...]
    warehouse_id: UUID
    channel: SalesChannel = SalesChannel.POS
    customer_id: UUID | None = None
    customer: CustomerInfo | None = None
    discount_amount: Decimal = ZERO
    payment_method: PaymentMethod | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _set(self, "lines", tuple(self.lines))
        _set(self, "warehouse_id", _uuid(self.warehouse_id, "warehouse_id"))
        if self.warehouse_id is None:
            raise ValidationError("warehouse_id", "is required")
        _set(self, "channel", _enum(SalesChannel, self.channel, "channel"))
        _set(self, "customer_id", _uuid(self.customer_id, "customer_id"))
        _set(self, "discount_amount", _decimal(self.discount_amount, "discount_amount", ZERO))
        _set(self, "payment_method", _enum(PaymentMethod, self.payment_method, "payment_method"))
        _set(self, "notes", _text(self.notes, "notes", 1000))


# =============================================================================
# Filters
# =============================================================================


@dataclass(frozen=True)
class _Paged:
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    def _check_paging(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("page", "must be an integer >= 1")
        if (
            isinstance(self.limit, bool)
            or not isinstance(self.limit, int)
            or not 1 <= self.limit <= MAX_PAGE_LIMIT
        ):
            raise ValidationError("limit", f"must be an integer in 1..{MAX_PAGE_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


PRODUCT_SORT_FIELDS = ("name", "brand", "created_at", "updated_at")


@dataclass(frozen=True)
class ProductFilter(_Paged):
    search: str | None = None
    category_id: UUID | None = None
    brand: str | None = None
    sku_status: SkuStatus | None = None
    in_stock: bool | None = None
    is_active: bool | None = None
    sort: str = "-created_at"

    def __post_init__(self) -> None:
        self._check_paging()
        _set(self, "category_id", _uuid(self.category_id, "category_id"))
        _set(self, "sku_status", _enum(SkuStatus, self.sku_status, "sku_status"))
        if self.sort.lstrip("-") not in PRODUCT_SORT_FIELDS:
            raise ValidationError(
                "sort", f"must be one of {', '.join(PRODUCT_SORT_FIELDS)} (optionally '-' prefixed)"
            )


@dataclass(frozen=True)
class MovementFilter(_Paged):
    product_id: UUID | None = None
    sku_code: str | None = None
    movement_type: MovementType | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    warehouse_id: UUID | None = None
    actor_id: UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    def __post_init__(self) -> None:
        self._check_paging()
        _set(self, "product_id", _uuid(self.product_id, "product_id"))
        if self.sku_code is not None:
            _set(self, "sku_code", normalize_code(self.sku_code, "sku_code"))
        _set(self, "movement_type", _enum(MovementType, self.movement_type, "movement_type"))
        _set(self, "reference_type", _enum(ReferenceType, self.reference_type, "reference_type"))
        _set(self, "warehouse_id", _uuid(self.warehouse_id, "warehouse_id"))
        _set(self, "actor_id", _uuid(self.actor_id, "actor_id"))
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from", "must not be after date_to")


@dataclass(frozen=True)
class OrderFilter(_Paged):
    status: OrderStatus | None = None
    channel: SalesChannel | None = None
    payment_status: PaymentStatus | None = None
    warehouse_id: UUID | None = None
    customer_id: UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    def __post_init__(self) -> None:
        self._check_paging()
        _set(self, "status", _enum(OrderStatus, self.status, "status"))
        _set(self, "channel", _enum(SalesChannel, self.channel, "channel"))
        _set(self, "payment_status", _enum(PaymentStatus, self.payment_status, "payment_status"))
        _set(self, "warehouse_id", _uuid(self.warehouse_id, "warehouse_id"))
        _set(self, "customer_id", _uuid(self.customer_id, "customer_id"))
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from", "must not be after date_to")


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a filtered, sorted listing."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.total else 0


# =============================================================================
# Records (outputs)
# =============================================================================


@dataclass(frozen=True)
class VendorLinkRecord:
    id: UUID
    vendor_id: UUID | None
    vendor_name: str
    vendor_sku: str
    lead_time_days: int
    last_cost: Decimal
    is_preferred: bool

    @classmethod
    def from_model(cls, model: VendorLinkModel) -> VendorLinkRecord:
        return cls(
            id=model.id,
            vendor_id=model.vendor_id,
            vendor_name=model.vendor_name,
            vendor_sku=model.vendor_sku,
            lead_time_days=model.lead_time_days,
            last_cost=model.last_cost,
            is_preferred=model.is_preferred,
        )


@dataclass(frozen=True)
class SkuRecord:
    id: UUID
    product_id: UUID
    code: str
    barcode: str | None
    attributes: Mapping[str, Any]
    cost: Decimal
    retail_price: Decimal
    wholesale_tier1: Decimal
    wholesale_tier2: Decimal
    status: SkuStatus
    vendors: tuple[VendorLinkRecord, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.status == SkuStatus.ACTIVE

    def price_for(self, channel: SalesChannel) -> Decimal:
        """Default unit price for a sales channel."""
        if channel == SalesChannel.B2B:
            return self.wholesale_tier1
        return self.retail_price

    @classmethod
    def from_model(cls, model: SkuModel) -> SkuRecord:
        return cls(
            id=model.id,
            product_id=model.product_id,
            code=model.code,
            barcode=model.barcode,
            attributes=MappingProxyType(dict(model.attributes or {})),
            cost=model.cost,
            retail_price=model.retail_price,
            wholesale_tier1=model.wholesale_tier1,
            wholesale_tier2=model.wholesale_tier2,
            status=SkuStatus(model.status),
            vendors=tuple(VendorLinkRecord.from_model(v) for v in model.vendors),
        )


@dataclass(frozen=True)
class ProductRecord:
    id: UUID
    name: str
    description: str | None
    category_id: UUID | None
    brand: str | None
    barcode: str | None
    tags: tuple[str, ...]
    is_active: bool
    skus: tuple[SkuRecord, ...]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def sku(self, code: str) -> SkuRecord | None:
        code = code.strip().upper()
        for sku in self.skus:
            if sku.code == code:
                return sku
        return None

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductRecord:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            category_id=model.category_id,
            brand=model.brand,
            barcode=model.barcode,
            tags=tuple(model.tags or ()),
            is_active=model.is_active,
            skus=tuple(SkuRecord.from_model(s) for s in model.skus),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class SkuLookup:
    """Result of a SKU code or barcode lookup."""

    product: ProductRecord
    sku: SkuRecord


@dataclass(frozen=True)
class WarehouseRecord:
    id: UUID
    code: str
    name: str
    address: str | None
    city: str | None
    postal_code: str | None
    country: str | None
    is_active: bool
    allow_negative_stock: bool
    default_tax_rate: Decimal

    @classmethod
    def from_model(cls, model: WarehouseModel) -> WarehouseRecord:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            address=model.address,
            city=model.city,
            postal_code=model.postal_code,
            country=model.country,
            is_active=model.is_active,
            allow_negative_stock=model.allow_negative_stock,
            default_tax_rate=model.default_tax_rate,
        )


@dataclass(frozen=True)
class MovementRecord:
    """An appended stock movement, as stored."""

    id: UUID
    product_id: UUID
    sku_code: str
    movement_type: MovementType
    quantity: Decimal
    delta: Decimal
    warehouse_id: UUID
    reference_type: ReferenceType
    reference_id: str | None
    unit_cost: Decimal | None
    notes: str | None
    actor_id: UUID
    occurred_at: datetime
    balance_after: Decimal
    corrects_id: UUID | None = None

    @classmethod
    def from_model(cls, model: StockMovementModel) -> MovementRecord:
        return cls(
            id=model.id,
            product_id=model.product_id,
            sku_code=model.sku_code,
            movement_type=MovementType(model.movement_type),
            quantity=model.quantity,
            delta=model.delta,
            warehouse_id=model.warehouse_id,
            reference_type=ReferenceType(model.reference_type),
            reference_id=model.reference_id,
            unit_cost=model.unit_cost,
            notes=model.notes,
            actor_id=model.created_by_id,
            occurred_at=model.occurred_at,
            balance_after=model.balance_after,
            corrects_id=model.corrects_id,
        )


@dataclass(frozen=True)
class StockLevelRecord:
    sku_code: str
    warehouse_id: UUID
    quantity: Decimal

    @classmethod
    def from_model(cls, model: StockLevelModel) -> StockLevelRecord:
        return cls(
            sku_code=model.sku_code,
            warehouse_id=model.warehouse_id,
            quantity=model.quantity,
        )


@dataclass(frozen=True)
class StockDiscrepancy:
    """A cached stock level that disagrees with its ledger replay."""

    sku_code: str
    warehouse_id: UUID
    cached_quantity: Decimal
    ledger_quantity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_quantity - self.ledger_quantity


@dataclass(frozen=True)
class OrderLineRecord:
    line_no: int
    sku_code: str
    product_id: UUID
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    line_total: Decimal

    @classmethod
    def from_model(cls, model: OrderLineModel) -> OrderLineRecord:
        return cls(
            line_no=model.line_no,
            sku_code=model.sku_code,
            product_id=model.product_id,
            quantity=model.quantity,
            unit_price=model.unit_price,
            discount_percent=model.discount_percent,
            line_total=model.line_total,
        )


@dataclass(frozen=True)
class OrderRecord:
    id: UUID
    order_number: str
    status: OrderStatus
    channel: SalesChannel
    warehouse_id: UUID
    customer_id: UUID | None
    customer: CustomerInfo | None
    lines: tuple[OrderLineRecord, ...]
    discount_amount: Decimal
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    payment_method: PaymentMethod | None
    payment_status: PaymentStatus
    notes: str | None
    actor_id: UUID
    created_at: datetime | None = None
    confirmed_at: datetime | None = None

    @classmethod
    def from_model(cls, model: OrderModel) -> OrderRecord:
        customer = None
        if model.customer_name:
            customer = CustomerInfo(
                name=model.customer_name,
                email=model.customer_email,
                phone=model.customer_phone,
                address=model.customer_address,
            )
        return cls(
            id=model.id,
            order_number=model.order_number,
            status=OrderStatus(model.status),
            channel=SalesChannel(model.channel),
            warehouse_id=model.warehouse_id,
            customer_id=model.customer_id,
            customer=customer,
            lines=tuple(OrderLineRecord.from_model(line) for line in model.lines),
            discount_amount=model.discount_amount,
            subtotal=model.subtotal,
            tax_rate=model.tax_rate,
            tax_amount=model.tax_amount,
            total=model.total,
            payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
            payment_status=PaymentStatus(model.payment_status),
            notes=model.notes,
            actor_id=model.created_by_id,
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
        )
