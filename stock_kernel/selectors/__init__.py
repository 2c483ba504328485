"""Kernel selectors: read-only queries returning frozen records."""

from stock_kernel.selectors.catalog_selector import CatalogSelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.selectors.order_selector import OrderSelector
from stock_kernel.selectors.stock_selector import StockSelector
from stock_kernel.selectors.warehouse_selector import WarehouseSelector

__all__ = [
    "CatalogSelector",
    "MovementSelector",
    "OrderSelector",
    "StockSelector",
    "WarehouseSelector",
]
