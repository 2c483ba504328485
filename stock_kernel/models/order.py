"""
Module: stock_kernel.models.order
Responsibility: ORM persistence for sales orders and their lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - order_number is unique (UNIQUE constraint) and never changes once
      assigned (ORM listener in db/immutability.py).
    - Derived amounts (line_total, subtotal, tax_amount, total) are written
      only by OrderService from stock_engines.order_totals.compute_totals;
      there is no persistence hook that recomputes them.
    - Status moves only along ORDER_WORKFLOW; leaving DRAFT is a
      compare-and-set in OrderService so it happens at most once.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, TrackedBase, UUIDString
from stock_kernel.db.types import ExactDecimal
from stock_kernel.domain.values import OrderStatus, PaymentStatus


class Order(TrackedBase):
    """
    A sales order.

    ``created_by_id`` is the acting user.  Customer details are either a
    reference (``customer_id``), an inline snapshot (``customer_*``), or both.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        Index("idx_order_status", "status"),
        Index("idx_order_warehouse", "warehouse_id"),
        Index("idx_order_customer", "customer_id"),
        Index("idx_order_created_at", "created_at"),
    )

    # ORD-YYYYMMDD-NNNN
    order_number: Mapped[str] = mapped_column(String(30), nullable=False)

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=OrderStatus.DRAFT.value,
    )

    channel: Mapped[str] = mapped_column(String(10), nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    discount_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    subtotal: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(ExactDecimal(12, 9), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    payment_method: Mapped[str | None] = mapped_column(String(10), nullable=True)

    payment_status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    lines: Mapped[list["OrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderLine.line_no",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status}>"

    @property
    def is_draft(self) -> bool:
        return self.status == OrderStatus.DRAFT.value


class OrderLine(Base):
    """One line of an order; ``line_total`` is derived."""

    __tablename__ = "order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_no", name="uq_order_line_no"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    sku_code: Mapped[str] = mapped_column(String(50), nullable=False)

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    discount_percent: Mapped[Decimal] = mapped_column(
        ExactDecimal(12, 9),
        nullable=False,
        default=Decimal("0"),
    )

    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped[Order] = relationship(back_populates="lines")
