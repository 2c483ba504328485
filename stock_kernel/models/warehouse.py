"""
Module: stock_kernel.models.warehouse
Responsibility: ORM persistence for warehouses and their stock policy.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Warehouse code is unique, upper-cased, at most 10 characters.
    - default_tax_rate is a fraction in [0, 1] (validated by WarehouseSpec).
"""

from decimal import Decimal

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.db.types import ExactDecimal


class Warehouse(TrackedBase):
    """
    A stock location.

    ``allow_negative_stock`` is consulted by the InventoryReconciler;
    ``default_tax_rate`` is applied to every order fulfilled from here.
    """

    __tablename__ = "warehouses"

    __table_args__ = (UniqueConstraint("code", name="uq_warehouse_code"),)

    code: Mapped[str] = mapped_column(String(10), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    address: Mapped[str | None] = mapped_column(String(200), nullable=True)

    city: Mapped[str | None] = mapped_column(String(100), nullable=True)

    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    allow_negative_stock: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    default_tax_rate: Mapped[Decimal] = mapped_column(
        ExactDecimal(12, 9),
        nullable=False,
        default=Decimal("0.24"),
    )

    def __repr__(self) -> str:
        return f"<Warehouse {self.code}>"
