"""
WarehouseSelector -- read paths over warehouses.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import WarehouseRecord
from stock_kernel.exceptions import WarehouseNotFoundError
from stock_kernel.models.warehouse import Warehouse
from stock_kernel.selectors.base import BaseSelector


class WarehouseSelector(BaseSelector[Warehouse]):
    """Read-only warehouse queries."""

    def get_warehouse(self, warehouse_id: UUID) -> WarehouseRecord:
        warehouse = self.session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        return WarehouseRecord.from_model(warehouse)

    def list_warehouses(self, active_only: bool = True) -> list[WarehouseRecord]:
        query = select(Warehouse).order_by(Warehouse.code)
        if active_only:
            query = query.where(Warehouse.is_active.is_(True))
        return [WarehouseRecord.from_model(row) for row in self.session.execute(query).scalars()]
