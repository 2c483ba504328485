"""
Pure domain layer.

This module contains data transfer objects, enumerations and the order
state machine, with NO dependencies on:
- ORM sessions
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    CustomerInfo,
    MovementFilter,
    MovementRecord,
    MovementRequest,
    OrderFilter,
    OrderLineRecord,
    OrderLineSpec,
    OrderRecord,
    OrderSpec,
    Page,
    ProductFilter,
    ProductPatch,
    ProductRecord,
    ProductSpec,
    SkuLookup,
    SkuRecord,
    SkuSpec,
    StockDiscrepancy,
    StockLevelRecord,
    VendorLinkRecord,
    VendorSpec,
    WarehousePatch,
    WarehouseRecord,
    WarehouseSpec,
)
from stock_kernel.domain.order_workflow import ORDER_WORKFLOW, StockEffect
from stock_kernel.domain.values import (
    MovementType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReferenceType,
    SalesChannel,
    SkuStatus,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CustomerInfo",
    "MovementFilter",
    "MovementRecord",
    "MovementRequest",
    "OrderFilter",
    "OrderLineRecord",
    "OrderLineSpec",
    "OrderRecord",
    "OrderSpec",
    "Page",
    "ProductFilter",
    "ProductPatch",
    "ProductRecord",
    "ProductSpec",
    "SkuLookup",
    "SkuRecord",
    "SkuSpec",
    "StockDiscrepancy",
    "StockLevelRecord",
    "VendorLinkRecord",
    "VendorSpec",
    "WarehousePatch",
    "WarehouseRecord",
    "WarehouseSpec",
    "ORDER_WORKFLOW",
    "StockEffect",
    "MovementType",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "ReferenceType",
    "SalesChannel",
    "SkuStatus",
]
