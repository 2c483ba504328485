"""
Module: stock_kernel.selectors.stock_selector
Responsibility: Read paths over cached stock levels, and the audit replay
    that checks them against the ledger.
Architecture position: Kernel > Selectors.  Read-only.

Audit relevance:
    ``find_discrepancies`` recomputes SUM(delta) per (sku_code,
    warehouse_id) from StockMovement and reports every StockLevel whose
    cached quantity differs, including ledger keys with no level row and
    level rows with no ledger history.  An empty result means every cached
    level is explained by the ledger.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.db.types import decimal_cmp, decimal_sum
from stock_kernel.domain.dtos import StockDiscrepancy, StockLevelRecord
from stock_kernel.models.stock import StockLevel, StockMovement
from stock_kernel.selectors.base import BaseSelector

ZERO = Decimal("0")


class StockSelector(BaseSelector[StockLevel]):
    """Stock level queries."""

    def on_hand(self, sku_code: str, warehouse_id: UUID | None = None) -> Decimal:
        """
        Cached quantity of a SKU in one warehouse, or summed over all
        warehouses when ``warehouse_id`` is None.
        """
        sku_code = sku_code.strip().upper()
        query = select(func.coalesce(decimal_sum(StockLevel.quantity), 0)).where(
            StockLevel.sku_code == sku_code
        )
        if warehouse_id is not None:
            query = query.where(StockLevel.warehouse_id == warehouse_id)
        return Decimal(str(self.session.execute(query).scalar_one()))

    def levels(self, warehouse_id: UUID | None = None) -> list[StockLevelRecord]:
        query = select(StockLevel)
        if warehouse_id is not None:
            query = query.where(StockLevel.warehouse_id == warehouse_id)
        query = query.order_by(StockLevel.sku_code, StockLevel.warehouse_id).execution_options(
            populate_existing=True
        )
        return [StockLevelRecord.from_model(row) for row in self.session.execute(query).scalars()]

    def low_stock(
        self,
        threshold: Decimal = Decimal("10"),
        warehouse_id: UUID | None = None,
    ) -> list[StockLevelRecord]:
        """Levels at or below ``threshold``, lowest first."""
        query = select(StockLevel).where(decimal_cmp(StockLevel.quantity, threshold) <= 0)
        if warehouse_id is not None:
            query = query.where(StockLevel.warehouse_id == warehouse_id)
        query = query.execution_options(populate_existing=True)
        records = [StockLevelRecord.from_model(row) for row in self.session.execute(query).scalars()]
        # Sorted here: SQLite holds the quantities as text.
        return sorted(records, key=lambda r: (r.quantity, r.sku_code, str(r.warehouse_id)))

    def ledger_quantity(self, sku_code: str, warehouse_id: UUID) -> Decimal:
        """SUM(delta) of the ledger for one key."""
        value = self.session.execute(
            select(func.coalesce(decimal_sum(StockMovement.delta), 0)).where(
                StockMovement.sku_code == sku_code,
                StockMovement.warehouse_id == warehouse_id,
            )
        ).scalar_one()
        return Decimal(str(value))

    def find_discrepancies(self) -> list[StockDiscrepancy]:
        ledger = {
            (sku_code, warehouse_id): Decimal(str(total))
            for sku_code, warehouse_id, total in self.session.execute(
                select(
                    StockMovement.sku_code,
                    StockMovement.warehouse_id,
                    decimal_sum(StockMovement.delta),
                ).group_by(StockMovement.sku_code, StockMovement.warehouse_id)
            )
        }
        cached = {
            (level.sku_code, level.warehouse_id): level.quantity
            for level in self.session.execute(
                select(StockLevel).execution_options(populate_existing=True)
            ).scalars()
        }

        discrepancies = []
        for key in sorted(set(ledger) | set(cached), key=lambda k: (k[0], str(k[1]))):
            ledger_qty = ledger.get(key, ZERO)
            cached_qty = cached.get(key, ZERO)
            if ledger_qty != cached_qty:
                discrepancies.append(
                    StockDiscrepancy(
                        sku_code=key[0],
                        warehouse_id=key[1],
                        cached_quantity=cached_qty,
                        ledger_quantity=ledger_qty,
                    )
                )
        return discrepancies
