"""Kernel services: flush-only writers.  Callers own the transaction."""

from stock_kernel.services.catalog_service import CatalogService
from stock_kernel.services.inventory_reconciler import InventoryReconciler
from stock_kernel.services.order_service import OrderService
from stock_kernel.services.sequence_service import OrderNumberService, SequenceService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.warehouse_service import WarehouseService

__all__ = [
    "CatalogService",
    "InventoryReconciler",
    "OrderService",
    "OrderNumberService",
    "SequenceService",
    "StockLedger",
    "WarehouseService",
]
