"""
Module: stock_kernel.models.catalog
Responsibility: ORM persistence for the product catalog: products, their
    SKUs (sellable variants) and per-SKU vendor links.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - SKU code is globally unique (UNIQUE constraint) and never changes once
      assigned (ORM listener in db/immutability.py).
    - SKU barcodes are unique among SKUs; product barcodes are unique among
      products (UNIQUE constraints; NULLs do not collide).
    - A product owns its SKUs (cascade); a SKU owns its vendor links.
    - SKUs are never deleted by the catalog; they are ARCHIVED.

Failure modes:
    - IntegrityError on duplicate code/barcode that slipped past the
      CatalogService pre-check (concurrent creation).  The service facade
      maps this to ConflictError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, TrackedBase, UUIDString
from stock_kernel.domain.values import SkuStatus


class Product(TrackedBase):
    """
    A catalog product.

    Contract:
        Owns an ordered list of at least one SKU (enforced by CatalogService
        at creation).  ``is_active`` False is the soft-deleted state.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("barcode", name="uq_product_barcode"),
        Index("idx_product_name", "name"),
        Index("idx_product_brand", "brand"),
        Index("idx_product_category", "category_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)

    barcode: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Lower-cased, de-duplicated
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    skus: Mapped[list["Sku"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Sku.position",
    )

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name!r}>"

    def sku_by_code(self, code: str) -> "Sku | None":
        for sku in self.skus:
            if sku.code == code:
                return sku
        return None


class Sku(TrackedBase):
    """
    A sellable variant of a product: the unit at which stock and price are
    tracked.  Stock itself lives in StockLevel, keyed by (code, warehouse).
    """

    __tablename__ = "skus"

    __table_args__ = (
        UniqueConstraint("code", name="uq_sku_code"),
        UniqueConstraint("barcode", name="uq_sku_barcode"),
        Index("idx_sku_product", "product_id"),
        Index("idx_sku_status", "status"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    # Trimmed, upper-cased
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    barcode: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Flat str -> str | int | float | bool mapping
    attributes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    retail_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    wholesale_tier1: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    wholesale_tier2: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=SkuStatus.ACTIVE.value,
    )

    # Display order within the product
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[Product] = relationship(back_populates="skus")

    vendors: Mapped[list["VendorLink"]] = relationship(
        back_populates="sku",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sku {self.code} status={self.status}>"

    @property
    def is_active(self) -> bool:
        return self.status == SkuStatus.ACTIVE.value


class VendorLink(Base):
    """A supplier of a SKU, with its own part number and lead time."""

    __tablename__ = "sku_vendors"

    __table_args__ = (Index("idx_sku_vendor_sku", "sku_id"),)

    sku_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("skus.id"),
        nullable=False,
    )

    vendor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    vendor_name: Mapped[str] = mapped_column(String(200), nullable=False)

    vendor_sku: Mapped[str] = mapped_column(String(100), nullable=False)

    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)

    last_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_preferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sku: Mapped[Sku] = relationship(back_populates="vendors")
