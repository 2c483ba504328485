"""
Stock Kernel

The inventory ledger and order engine of a warehouse/retail backend:
- Append-only stock movement ledger
- Per-(SKU, warehouse) stock levels reconciled atomically at the storage layer
- Deterministic Decimal order totals
- Collision-free daily order numbering
"""

__version__ = "0.1.0"
