"""
CatalogService -- writes to the product catalog.

Responsibility:
    Creates and updates products with their SKUs and vendor links, assigns
    SKU codes, rejects duplicate codes and barcodes, and soft-deletes
    (archives) products.  Opening stock given at creation is posted through
    the StockLedger so that every stock level is explained by the ledger.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - SKU codes are trimmed, upper-cased and globally unique; a code is
      assigned exactly once, at creation, and never changes.
    - SKU barcodes are unique among SKUs; product barcodes are unique
      among products.  Repeats inside one request count as duplicates.
    - Every product has at least one SKU at creation.
    - SKUs are never deleted: SKUs dropped from an update, and all SKUs of
      an archived product, become ARCHIVED.
    - A failed create leaves no rows behind (SAVEPOINT).

Failure modes:
    - EmptyProductError: no SKUs.
    - DuplicateSkuCodeError / DuplicateBarcodeError (ConflictError).
    - ProductNotFoundError: update/archive of an unknown product.
    - ValidationError: opening stock without a warehouse.
"""

from collections import Counter
from decimal import Decimal
from typing import Iterable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import (
    MovementRequest,
    ProductPatch,
    ProductSpec,
    SkuSpec,
    VendorSpec,
)
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.domain.values import MovementType, ReferenceType, SkuStatus
from stock_kernel.exceptions import (
    DuplicateBarcodeError,
    DuplicateSkuCodeError,
    EmptyProductError,
    ProductNotFoundError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import Product, Sku, VendorLink
from stock_kernel.services.base import BaseService, touch
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.warehouse_service import resolve_warehouse

logger = get_logger("services.catalog")

ZERO = Decimal("0")


def _repeats(values: Iterable[str]) -> list[str]:
    return [value for value, count in Counter(values).items() if count > 1]


class CatalogService(BaseService[Product]):
    """Writes products, SKUs and vendor links."""

    model = Product
    not_found_error = ProductNotFoundError

    def __init__(
        self,
        session: Session,
        clock: Clock,
        ledger: StockLedger | None = None,
        defaults: StockDefaults | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._ledger = ledger or StockLedger(session, clock)
        self._defaults = defaults or StockDefaults()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_product(
        self,
        spec: ProductSpec,
        actor_id: UUID,
        warehouse_id: UUID | None = None,
    ) -> Product:
        """
        Create a product with its SKUs.

        SKUs with ``initial_stock`` > 0 get an opening IN/ADJUSTMENT
        movement into ``warehouse_id``.
        """
        if not spec.skus:
            raise EmptyProductError()

        opening = [s for s in spec.skus if s.initial_stock > ZERO]
        if opening and warehouse_id is None:
            raise ValidationError(
                "warehouse_id", "required when SKUs carry initial stock"
            )
        if opening:
            resolve_warehouse(self.session, warehouse_id)

        self._check_duplicates(spec.skus, spec.barcode)

        now = self._clock.now_utc()
        with self.session.begin_nested():
            product = Product(
                id=uuid4(),
                name=spec.name,
                description=spec.description,
                category_id=spec.category_id,
                brand=spec.brand,
                barcode=spec.barcode,
                tags=list(spec.tags),
                is_active=spec.is_active,
                created_at=now,
                updated_at=now,
                created_by_id=actor_id,
            )
            taken: set[str] = set()
            for position, sku_spec in enumerate(spec.skus):
                code = sku_spec.code or self._generate_code(product.id, taken)
                taken.add(code)
                product.skus.append(self._new_sku(sku_spec, code, position, actor_id))

            self.session.add(product)
            self.session.flush()

            for sku_spec, sku in zip(spec.skus, product.skus):
                if sku_spec.initial_stock > ZERO:
                    self._ledger.append_movement(
                        MovementRequest(
                            product_id=product.id,
                            sku_code=sku.code,
                            quantity=sku_spec.initial_stock,
                            movement_type=MovementType.IN,
                            warehouse_id=warehouse_id,
                            reference_type=ReferenceType.ADJUSTMENT,
                            actor_id=actor_id,
                            notes="Opening stock",
                        )
                    )

        logger.info(
            "product_created",
            extra={
                "product_id": str(product.id),
                "sku_codes": [s.code for s in product.skus],
            },
        )
        return product

    def _new_sku(self, spec: SkuSpec, code: str, position: int, actor_id: UUID) -> Sku:
        now = self._clock.now_utc()
        sku = Sku(
            code=code,
            barcode=spec.barcode,
            attributes=dict(spec.attributes),
            cost=spec.cost,
            retail_price=spec.retail_price,
            wholesale_tier1=spec.wholesale_tier1,
            wholesale_tier2=spec.wholesale_tier2,
            status=spec.status.value,
            position=position,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        sku.vendors = [self._new_vendor(v) for v in spec.vendors]
        return sku

    @staticmethod
    def _new_vendor(spec: VendorSpec) -> VendorLink:
        return VendorLink(
            vendor_id=spec.vendor_id,
            vendor_name=spec.vendor_name,
            vendor_sku=spec.vendor_sku,
            lead_time_days=spec.lead_time_days,
            last_cost=spec.last_cost,
            is_preferred=spec.is_preferred,
        )

    def _generate_code(self, product_id: UUID, taken: set[str]) -> str:
        """
        ``{prefix}-{last 6 of product id}-{last 6 of epoch ms}``.

        The time component is bumped until the code is free.
        """
        product_part = product_id.hex[-6:].upper()
        millis = int(self._clock.now_utc().timestamp() * 1000)
        while True:
            code = f"{self._defaults.sku_code_prefix}-{product_part}-{millis % 1_000_000:06d}"
            if code not in taken and not self._code_exists(code):
                return code
            millis += 1

    def _code_exists(self, code: str) -> bool:
        return (
            self.session.execute(select(Sku.id).where(Sku.code == code)).first()
            is not None
        )

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    def _check_duplicates(
        self,
        skus: Iterable[SkuSpec],
        product_barcode: str | None,
        exclude_product_id: UUID | None = None,
    ) -> None:
        skus = list(skus)
        codes = [s.code for s in skus if s.code]
        barcodes = [s.barcode for s in skus if s.barcode]

        repeated = _repeats(codes)
        if repeated:
            raise DuplicateSkuCodeError(repeated)
        repeated = _repeats(barcodes)
        if repeated:
            raise DuplicateBarcodeError(repeated)

        if codes:
            stmt = select(Sku.code).where(Sku.code.in_(codes))
            if exclude_product_id is not None:
                stmt = stmt.where(Sku.product_id != exclude_product_id)
            clashes = list(self.session.execute(stmt).scalars())
            if clashes:
                raise DuplicateSkuCodeError(clashes)

        if barcodes:
            stmt = select(Sku.barcode).where(Sku.barcode.in_(barcodes))
            if exclude_product_id is not None:
                stmt = stmt.where(Sku.product_id != exclude_product_id)
            clashes = list(self.session.execute(stmt).scalars())
            if clashes:
                raise DuplicateBarcodeError(clashes)

        if product_barcode:
            stmt = select(Product.barcode).where(Product.barcode == product_barcode)
            if exclude_product_id is not None:
                stmt = stmt.where(Product.id != exclude_product_id)
            if self.session.execute(stmt).first() is not None:
                raise DuplicateBarcodeError([product_barcode])

    # ------------------------------------------------------------------
    # Update / archive
    # ------------------------------------------------------------------

    def update_product(self, product_id: UUID, patch: ProductPatch, actor_id: UUID) -> Product:
        """
        Apply a partial update.

        When ``patch.skus`` is given: matching codes update in place, new or
        missing codes add SKUs, and existing SKUs left out are ARCHIVED.
        """
        product = self._load(product_id)

        if patch.skus is not None:
            if not patch.skus:
                raise EmptyProductError()
            if any(s.initial_stock > ZERO for s in patch.skus):
                raise ValidationError(
                    "initial_stock",
                    "only allowed at product creation; post a stock movement instead",
                )
        self._check_duplicates(
            patch.skus or (),
            patch.barcode,
            exclude_product_id=product.id,
        )

        for name in ("name", "description", "category_id", "brand", "barcode", "is_active"):
            value = getattr(patch, name)
            if value is not None:
                setattr(product, name, value)
        if patch.tags is not None:
            product.tags = list(patch.tags)

        added: list[str] = []
        archived: list[str] = []
        if patch.skus is not None:
            added, archived = self._merge_skus(product, patch.skus, actor_id)

        touch(product, actor_id, self._clock)
        self.session.flush()

        logger.info(
            "product_updated",
            extra={
                "product_id": str(product.id),
                "skus_added": added,
                "skus_archived": archived,
            },
        )
        return product

    def _merge_skus(
        self,
        product: Product,
        specs: tuple[SkuSpec, ...],
        actor_id: UUID,
    ) -> tuple[list[str], list[str]]:
        existing = {sku.code: sku for sku in product.skus}
        seen: set[str] = set()
        added: list[str] = []
        taken = set(existing)
        position = max((s.position for s in product.skus), default=-1) + 1

        for spec in specs:
            sku = existing.get(spec.code) if spec.code else None
            if sku is not None:
                self._update_sku(sku, spec, actor_id)
                seen.add(sku.code)
                continue
            code = spec.code or self._generate_code(product.id, taken)
            taken.add(code)
            product.skus.append(self._new_sku(spec, code, position, actor_id))
            position += 1
            added.append(code)

        archived = []
        for code, sku in existing.items():
            if code not in seen and sku.status != SkuStatus.ARCHIVED.value:
                sku.status = SkuStatus.ARCHIVED.value
                touch(sku, actor_id, self._clock)
                archived.append(code)
        return added, archived

    def _update_sku(self, sku: Sku, spec: SkuSpec, actor_id: UUID) -> None:
        sku.barcode = spec.barcode
        sku.attributes = dict(spec.attributes)
        sku.cost = spec.cost
        sku.retail_price = spec.retail_price
        sku.wholesale_tier1 = spec.wholesale_tier1
        sku.wholesale_tier2 = spec.wholesale_tier2
        sku.status = spec.status.value
        sku.vendors = [self._new_vendor(v) for v in spec.vendors]
        touch(sku, actor_id, self._clock)

    def archive_product(self, product_id: UUID, actor_id: UUID) -> Product:
        """Soft delete: the product goes inactive and all its SKUs ARCHIVED."""
        product = self._load(product_id)
        product.is_active = False
        touch(product, actor_id, self._clock)
        for sku in product.skus:
            if sku.status != SkuStatus.ARCHIVED.value:
                sku.status = SkuStatus.ARCHIVED.value
                touch(sku, actor_id, self._clock)
        self.session.flush()

        logger.info("product_archived", extra={"product_id": str(product.id)})
        return product
