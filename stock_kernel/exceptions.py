"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (API layer, reports, batch jobs) must be able to react to a failed
stock or order operation without parsing message strings.  Every error:

  1. Has its own class (catch by type, not message)
  2. Carries a ``code`` class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (sku_code, warehouse_id, ...)

Example:
    try:
        ledger.append_movement(request)
    except InsufficientStockError as e:
        api_response(
            code=e.code,
            sku=e.sku_code,
            available=e.available,
            requested=e.requested,
        )

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- EmptyOrderError
    |   +-- EmptyProductError
    |   +-- InvalidQuantityError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- SkuNotFoundError          (code UNKNOWN_SKU)
    |   +-- WarehouseNotFoundError
    |   +-- OrderNotFoundError
    |   +-- MovementNotFoundError
    |
    +-- ConflictError
    |   +-- DuplicateSkuCodeError
    |   +-- DuplicateBarcodeError
    |   +-- DuplicateOrderNumberError
    |   +-- DuplicateWarehouseCodeError
    |   +-- MovementAlreadyCorrectedError
    |
    +-- InsufficientStockError
    |
    +-- InvalidTransitionError
    |
    +-- InternalError                 (opaque to callers)
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed input (field + reason)
                | EMPTY_ORDER                 | Order without lines
                | EMPTY_PRODUCT               | Product without SKUs
                | INVALID_QUANTITY            | Zero-delta movement
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | Product id doesn't exist
                | UNKNOWN_SKU                 | Product/SKU pair doesn't resolve
                | WAREHOUSE_NOT_FOUND         | Warehouse id doesn't exist
                | ORDER_NOT_FOUND             | Order id/number doesn't exist
                | MOVEMENT_NOT_FOUND          | Movement id doesn't exist
----------------|-----------------------------|-----------------------------------------
Conflict        | DUPLICATE_SKU_CODE          | SKU code already in the catalog
                | DUPLICATE_BARCODE           | Barcode already in the catalog
                | DUPLICATE_ORDER_NUMBER      | Order number collision
                | DUPLICATE_WAREHOUSE_CODE    | Warehouse code already used
                | MOVEMENT_ALREADY_CORRECTED  | Correction already appended
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Movement would go below zero
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_TRANSITION          | Illegal order status change
----------------|-----------------------------|-----------------------------------------
Internal        | INTERNAL_ERROR              | Storage failure, broken invariant
                | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on the ledger

===============================================================================
HANDLING PATTERNS
===============================================================================

Everything except ``InternalError`` is an expected, caller-correctable
condition and is surfaced as-is.  ``InternalError`` messages are generic;
the underlying cause is only available in the logs (``__cause__``).
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation


class ValidationError(StockKernelError):
    """Malformed input, reported with the offending field."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class EmptyOrderError(ValidationError):
    """An order must carry at least one line."""

    code: str = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("lines", "Order must have at least one line item")


class EmptyProductError(ValidationError):
    """A product must carry at least one SKU."""

    code: str = "EMPTY_PRODUCT"

    def __init__(self):
        super().__init__("skus", "Product must have at least one SKU")


class InvalidQuantityError(ValidationError):
    """A stock movement cannot have a zero quantity."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, sku_code: str, quantity):
        self.sku_code = sku_code
        self.quantity = quantity
        super().__init__("quantity", f"Quantity cannot be zero (sku {sku_code})")


# Not found


class NotFoundError(StockKernelError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class SkuNotFoundError(NotFoundError):
    """No product/SKU combination resolves."""

    code: str = "UNKNOWN_SKU"

    def __init__(self, sku_code: str, product_id: str | None = None):
        self.sku_code = sku_code
        self.product_id = product_id
        if product_id:
            msg = f"SKU {sku_code} not found on product {product_id}"
        else:
            msg = f"SKU not found: {sku_code}"
        super().__init__(msg)


class WarehouseNotFoundError(NotFoundError):
    """Warehouse with given ID was not found."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse not found: {warehouse_id}")


class OrderNotFoundError(NotFoundError):
    """Order with given ID or number was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_ref: str):
        self.order_ref = order_ref
        super().__init__(f"Order not found: {order_ref}")


class MovementNotFoundError(NotFoundError):
    """Stock movement with given ID was not found."""

    code: str = "MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Stock movement not found: {movement_id}")


# Conflicts (uniqueness)


class ConflictError(StockKernelError):
    """Base exception for uniqueness violations."""

    code: str = "CONFLICT"


class DuplicateSkuCodeError(ConflictError):
    """SKU code already exists in the catalog."""

    code: str = "DUPLICATE_SKU_CODE"

    def __init__(self, sku_codes: list[str]):
        self.sku_codes = sorted(sku_codes)
        super().__init__(
            f"One or more SKU codes already exist: {', '.join(self.sku_codes)}"
        )


class DuplicateBarcodeError(ConflictError):
    """Barcode already exists in the catalog."""

    code: str = "DUPLICATE_BARCODE"

    def __init__(self, barcodes: list[str]):
        self.barcodes = sorted(barcodes)
        super().__init__(
            f"One or more barcodes already exist: {', '.join(self.barcodes)}"
        )


class DuplicateOrderNumberError(ConflictError):
    """Order number already assigned."""

    code: str = "DUPLICATE_ORDER_NUMBER"

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number already exists: {order_number}")


class DuplicateWarehouseCodeError(ConflictError):
    """Warehouse code already in use."""

    code: str = "DUPLICATE_WAREHOUSE_CODE"

    def __init__(self, warehouse_code: str):
        self.warehouse_code = warehouse_code
        super().__init__(f"Warehouse code already exists: {warehouse_code}")


class MovementAlreadyCorrectedError(ConflictError):
    """A correcting movement was already appended for this movement."""

    code: str = "MOVEMENT_ALREADY_CORRECTED"

    def __init__(self, movement_id: str, correction_id: str):
        self.movement_id = movement_id
        self.correction_id = correction_id
        super().__init__(
            f"Movement {movement_id} already corrected by {correction_id}"
        )


# Stock policy


class InsufficientStockError(StockKernelError):
    """Movement would drive the stock level negative."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        sku_code: str,
        warehouse_id: str,
        available,
        requested,
    ):
        self.sku_code = sku_code
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {sku_code} in warehouse {warehouse_id}: "
            f"available {available}, requested {requested}"
        )


# Workflow


class InvalidTransitionError(StockKernelError):
    """Illegal order status change."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, order_ref: str, from_status: str, to_status: str):
        self.order_ref = order_ref
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Order {order_ref} cannot move from {from_status} to {to_status}"
        )


# Internal


class InternalError(StockKernelError):
    """
    Unexpected failure (storage unavailable, broken invariant).

    The message shown to callers is deliberately generic; the original
    exception is chained as ``__cause__`` and logged.
    """

    code: str = "INTERNAL_ERROR"

    def __init__(self, operation: str = "operation"):
        self.operation = operation
        super().__init__(f"Internal error during {operation}")


class ImmutabilityViolationError(InternalError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        StockKernelError.__init__(
            self,
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}",
        )
