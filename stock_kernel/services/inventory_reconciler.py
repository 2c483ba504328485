"""
InventoryReconciler -- the single writer of cached stock levels.

Responsibility:
    Translates a movement's signed delta into an updated per-(SKU,
    warehouse) stock level, enforcing the warehouse's negative-stock policy.

Architecture position:
    Kernel > Services.  Called only by StockLedger, inside the same
    transaction as the movement append.

Invariants enforced:
    - Only code path that writes StockLevel.quantity.
    - No read-then-write: the level row is created on demand with
      INSERT ... ON CONFLICT DO NOTHING, then changed by ONE statement

          UPDATE stock_levels
             SET quantity = quantity + :delta
           WHERE sku_code = :sku AND warehouse_id = :wh
             [AND quantity + :delta >= 0]      -- negative stock forbidden
       RETURNING quantity

      The row lock taken by the UPDATE serializes concurrent movements on
      the same key; no update is lost.  The addition and the guard are
      exact decimal SQL (db/types.py), so SQLite never rounds through a
      float.
    - If the guarded UPDATE matches no row, the policy was violated:
      InsufficientStockError is raised and nothing is written.
    - Stock counts, which must read before they write, go through
      ``lock_level``: the row is created if missing and then locked, so two
      counts of the same key cannot both see the old quantity.

Failure modes:
    - InsufficientStockError when the new level would be negative and the
      warehouse forbids negative stock.
    - WarehouseNotFoundError for an unknown warehouse.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stock_kernel.db.atomic import insert_ignore
from stock_kernel.db.types import decimal_add, decimal_cmp
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock import StockLevel
from stock_kernel.services.base import BaseService
from stock_kernel.services.warehouse_service import resolve_warehouse

logger = get_logger("services.reconciler")

ZERO = Decimal("0")


class InventoryReconciler(BaseService[StockLevel]):
    """Applies signed deltas to stock levels atomically."""

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def apply(self, sku_code: str, delta: Decimal, warehouse_id: UUID) -> Decimal:
        """
        Add ``delta`` to the stock level of ``sku_code`` in ``warehouse_id``.

        Returns:
            The new cached quantity.

        Raises:
            InsufficientStockError: If the result would be negative and the
                warehouse does not allow negative stock.
        """
        warehouse = resolve_warehouse(self.session, warehouse_id, require_active=False)
        table = StockLevel.__table__
        self._ensure_level(sku_code, warehouse.id)

        stmt = (
            update(table)
            .where(table.c.sku_code == sku_code)
            .where(table.c.warehouse_id == warehouse.id)
            .values(
                quantity=decimal_add(table.c.quantity, delta),
                updated_at=self._clock.now_utc(),
            )
            .returning(table.c.quantity)
        )
        if not warehouse.allow_negative_stock:
            stmt = stmt.where(decimal_cmp(decimal_add(table.c.quantity, delta), ZERO) >= 0)

        new_quantity = self.session.execute(stmt).scalar_one_or_none()

        if new_quantity is None:
            available = self.quantity(sku_code, warehouse.id)
            logger.warning(
                "insufficient_stock",
                extra={
                    "sku_code": sku_code,
                    "warehouse_id": str(warehouse.id),
                    "available": str(available),
                    "delta": str(delta),
                },
            )
            raise InsufficientStockError(
                sku_code=sku_code,
                warehouse_id=str(warehouse.id),
                available=available,
                requested=-delta,
            )

        logger.debug(
            "stock_level_reconciled",
            extra={
                "sku_code": sku_code,
                "warehouse_id": str(warehouse.id),
                "delta": str(delta),
                "quantity": str(new_quantity),
            },
        )
        return new_quantity

    def lock_level(self, sku_code: str, warehouse_id: UUID) -> Decimal:
        """
        Lock the level row of (sku_code, warehouse_id) and return its quantity.

        The row is created at zero first when missing, so there is always a
        row to lock: a concurrent caller blocks here until this transaction
        ends and then reads the committed quantity.
        """
        self._ensure_level(sku_code, warehouse_id)
        return self.quantity(sku_code, warehouse_id, for_update=True)

    def quantity(self, sku_code: str, warehouse_id: UUID, for_update: bool = False) -> Decimal:
        """Current cached level (0 when the pair has never moved)."""
        stmt = select(StockLevel.quantity).where(
            StockLevel.sku_code == sku_code,
            StockLevel.warehouse_id == warehouse_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        value = self.session.execute(stmt).scalar_one_or_none()
        return ZERO if value is None else value

    def _ensure_level(self, sku_code: str, warehouse_id: UUID) -> None:
        insert_ignore(
            self.session,
            StockLevel.__table__,
            {
                "sku_code": sku_code,
                "warehouse_id": warehouse_id,
                "quantity": ZERO,
                "updated_at": self._clock.now_utc(),
            },
        )
