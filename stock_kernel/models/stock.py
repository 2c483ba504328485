"""
Module: stock_kernel.models.stock
Responsibility: ORM persistence for the stock ledger (StockMovement) and the
    cached per-(SKU, warehouse) stock counters (StockLevel).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - StockMovement rows are append-only: never updated, never deleted
      (ORM listeners in db/immutability.py).  Corrections are new rows whose
      ``corrects_id`` points at the original; the UNIQUE constraint on
      ``corrects_id`` allows at most one correction per movement.
    - Movements reference products, SKUs, warehouses and actors by
      identifier only (no foreign keys), so catalog edits never cascade
      into the ledger.
    - StockLevel has exactly one row per (sku_code, warehouse_id).  Only the
      InventoryReconciler writes it, with single atomic UPDATE statements.

Audit relevance:
    For every (sku_code, warehouse_id), ``StockLevel.quantity`` equals the
    sum of ``StockMovement.delta``.  StockSelector.find_discrepancies()
    verifies this by replaying the ledger.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, TrackedBase, UUIDString


class StockMovement(TrackedBase):
    """
    An immutable record of a stock quantity change and its cause.

    ``quantity`` is what the caller submitted (positive for IN/OUT, signed
    for ADJ); ``delta`` is the signed change actually applied;
    ``balance_after`` is the warehouse stock level right after applying it.
    ``created_by_id`` is the acting user.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        UniqueConstraint("corrects_id", name="uq_movement_corrects"),
        Index("idx_movement_sku_warehouse", "sku_code", "warehouse_id"),
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_occurred_at", "occurred_at"),
        Index("idx_movement_reference", "reference_type", "reference_id"),
    )

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    sku_code: Mapped[str] = mapped_column(String(50), nullable=False)

    movement_type: Mapped[str] = mapped_column(String(3), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    delta: Mapped[Decimal] = mapped_column(nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    reference_type: Mapped[str] = mapped_column(String(20), nullable=False)

    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Server-assigned from the injected clock
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    balance_after: Mapped[Decimal] = mapped_column(nullable=False)

    # Set on correction movements only
    corrects_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.movement_type} {self.sku_code} "
            f"delta={self.delta}>"
        )


class StockLevel(Base):
    """
    Cached stock quantity for one SKU in one warehouse.

    Rows are created on demand by the reconciler (insert-or-ignore) and only
    ever mutated by ``UPDATE ... SET quantity = quantity + :delta``.
    """

    __tablename__ = "stock_levels"

    __table_args__ = (
        UniqueConstraint("sku_code", "warehouse_id", name="uq_stock_level_key"),
        Index("idx_stock_level_warehouse", "warehouse_id"),
    )

    sku_code: Mapped[str] = mapped_column(String(50), nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StockLevel {self.sku_code}@{self.warehouse_id} qty={self.quantity}>"
