"""Persistence models for the stock kernel."""

from stock_kernel.models.catalog import Product, Sku, VendorLink
from stock_kernel.models.order import Order, OrderLine
from stock_kernel.models.sequence import SequenceCounter
from stock_kernel.models.stock import StockLevel, StockMovement
from stock_kernel.models.warehouse import Warehouse

__all__ = [
    "Product",
    "Sku",
    "VendorLink",
    "Order",
    "OrderLine",
    "SequenceCounter",
    "StockLevel",
    "StockMovement",
    "Warehouse",
]
