"""Imperative shell: transaction-owning facade over the stock kernel."""

from stock_services.inventory_core import InventoryCore

__all__ = ["InventoryCore"]
