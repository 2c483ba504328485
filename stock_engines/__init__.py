"""
Module: stock_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel exceptions/logging and sibling engine
    modules.  MUST NOT import stock_services.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic; floats are never used for money.
    - Determinism: identical inputs always produce identical outputs.
"""

from stock_engines.order_totals import (
    OrderTotals,
    PricedLine,
    compute_line_total,
    compute_totals,
)
from stock_engines.tracer import traced_engine

__all__ = [
    "OrderTotals",
    "PricedLine",
    "compute_line_total",
    "compute_totals",
    "traced_engine",
]
