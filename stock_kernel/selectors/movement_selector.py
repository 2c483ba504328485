"""
MovementSelector -- read paths over the stock ledger.

Movements are listed newest first (by server timestamp).
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import MovementFilter, MovementRecord, Page
from stock_kernel.exceptions import MovementNotFoundError
from stock_kernel.models.stock import StockMovement
from stock_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[StockMovement]):
    """Read-only ledger queries returning MovementRecord."""

    def get_movement(self, movement_id: UUID) -> MovementRecord:
        movement = self.session.get(StockMovement, movement_id)
        if movement is None:
            raise MovementNotFoundError(str(movement_id))
        return MovementRecord.from_model(movement)

    def list_movements(self, filters: MovementFilter | None = None) -> Page[MovementRecord]:
        filters = filters or MovementFilter()
        query = select(StockMovement)

        if filters.product_id is not None:
            query = query.where(StockMovement.product_id == filters.product_id)
        if filters.sku_code is not None:
            query = query.where(StockMovement.sku_code == filters.sku_code)
        if filters.movement_type is not None:
            query = query.where(StockMovement.movement_type == filters.movement_type.value)
        if filters.reference_type is not None:
            query = query.where(StockMovement.reference_type == filters.reference_type.value)
        if filters.reference_id is not None:
            query = query.where(StockMovement.reference_id == filters.reference_id)
        if filters.warehouse_id is not None:
            query = query.where(StockMovement.warehouse_id == filters.warehouse_id)
        if filters.actor_id is not None:
            query = query.where(StockMovement.created_by_id == filters.actor_id)
        if filters.date_from is not None:
            query = query.where(StockMovement.occurred_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(StockMovement.occurred_at <= filters.date_to)

        query = query.order_by(StockMovement.occurred_at.desc(), StockMovement.id)
        return self._paginate(query, filters.page, filters.limit, MovementRecord.from_model)

    def movements_for_reference(self, reference_id: str) -> list[MovementRecord]:
        """All movements carrying ``reference_id`` (an order, transfer or movement id)."""
        rows = self.session.execute(
            select(StockMovement)
            .where(StockMovement.reference_id == reference_id)
            .order_by(StockMovement.occurred_at, StockMovement.id)
        ).scalars()
        return [MovementRecord.from_model(row) for row in rows]
