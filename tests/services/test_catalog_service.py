"""
CatalogService: product and SKU writes.

Covers:
- Creation with explicit and generated SKU codes
- Duplicate SKU codes and barcodes (catalog-wide and inside one request)
- Opening stock posted through the ledger
- Updates with SKU merge semantics, and archiving
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from stock_kernel.domain.dtos import ProductPatch, ProductSpec, SkuSpec, VendorSpec
from stock_kernel.domain.values import MovementType, ReferenceType, SkuStatus
from stock_kernel.exceptions import (
    ConflictError,
    DuplicateBarcodeError,
    DuplicateSkuCodeError,
    EmptyProductError,
    ProductNotFoundError,
    ValidationError,
)
from stock_kernel.models.catalog import Product, Sku
from stock_kernel.models.stock import StockMovement


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestCreateProduct:
    def test_creates_product_with_skus_and_vendors(self, catalog_service, test_actor_id):
        product = catalog_service.create_product(
            ProductSpec(
                name="Wireless Headphones",
                brand="SoundMax",
                tags=("Audio",),
                skus=(
                    SkuSpec(
                        code="wbh-001-blk",
                        barcode="5201234567890",
                        attributes={"color": "black"},
                        retail_price=Decimal("149.99"),
                        vendors=(VendorSpec(vendor_name="Acme", vendor_sku="AC-9"),),
                    ),
                    SkuSpec(code="WBH-001-WHT", attributes={"color": "white"}),
                ),
            ),
            test_actor_id,
        )

        assert [s.code for s in product.skus] == ["WBH-001-BLK", "WBH-001-WHT"]
        assert product.skus[0].vendors[0].lead_time_days == 7
        assert product.tags == ["audio"]
        assert product.is_active is True

    def test_requires_at_least_one_sku(self, catalog_service, test_actor_id):
        with pytest.raises(EmptyProductError):
            catalog_service.create_product(ProductSpec(name="Empty", skus=()), test_actor_id)

    def test_generated_codes_are_unique(self, catalog_service, test_actor_id):
        product = catalog_service.create_product(
            ProductSpec(name="Cable", skus=(SkuSpec(), SkuSpec(), SkuSpec())),
            test_actor_id,
        )

        codes = [s.code for s in product.skus]
        assert len(set(codes)) == 3
        suffix = product.id.hex[-6:].upper()
        for code in codes:
            prefix, product_part, time_part = code.split("-")
            assert prefix == "PROD"
            assert product_part == suffix
            assert len(time_part) == 6 and time_part.isdigit()


class TestDuplicates:
    def test_existing_code_rejected_and_nothing_created(
        self, session, catalog_service, create_product, test_actor_id
    ):
        create_product("WBH-001-BLK")
        products_before = _count(session, Product)
        skus_before = _count(session, Sku)

        with pytest.raises(ConflictError) as exc_info:
            catalog_service.create_product(
                ProductSpec(
                    name="Clone",
                    skus=(SkuSpec(code="NEW-1"), SkuSpec(code="wbh-001-blk")),
                ),
                test_actor_id,
            )

        assert isinstance(exc_info.value, DuplicateSkuCodeError)
        assert exc_info.value.sku_codes == ["WBH-001-BLK"]
        assert _count(session, Product) == products_before
        assert _count(session, Sku) == skus_before

    def test_code_repeated_inside_request(self, catalog_service, test_actor_id):
        with pytest.raises(DuplicateSkuCodeError):
            catalog_service.create_product(
                ProductSpec(name="Twice", skus=(SkuSpec(code="X-1"), SkuSpec(code="x-1"))),
                test_actor_id,
            )

    def test_sku_barcode_clash(self, catalog_service, test_actor_id):
        catalog_service.create_product(
            ProductSpec(name="A", skus=(SkuSpec(code="A-1", barcode="111"),)), test_actor_id
        )
        with pytest.raises(DuplicateBarcodeError):
            catalog_service.create_product(
                ProductSpec(name="B", skus=(SkuSpec(code="B-1", barcode="111"),)), test_actor_id
            )

    def test_product_barcode_clash(self, catalog_service, create_product, test_actor_id):
        create_product("P-1", barcode="999")
        with pytest.raises(DuplicateBarcodeError):
            catalog_service.create_product(
                ProductSpec(name="B", barcode="999", skus=(SkuSpec(code="P-2"),)), test_actor_id
            )


class TestOpeningStock:
    def test_posts_adjustment_movement(
        self, session, catalog_service, reconciler, warehouse, test_actor_id
    ):
        product = catalog_service.create_product(
            ProductSpec(name="Mouse", skus=(SkuSpec(code="MS-1", initial_stock=Decimal("25")),)),
            test_actor_id,
            warehouse_id=warehouse.id,
        )

        movement = session.execute(
            select(StockMovement).where(StockMovement.product_id == product.id)
        ).scalar_one()
        assert movement.movement_type == MovementType.IN.value
        assert movement.reference_type == ReferenceType.ADJUSTMENT.value
        assert reconciler.quantity("MS-1", warehouse.id) == Decimal("25")

    def test_requires_warehouse(self, catalog_service, test_actor_id):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                ProductSpec(name="Mouse", skus=(SkuSpec(code="MS-2", initial_stock=Decimal("5")),)),
                test_actor_id,
            )


class TestUpdateProduct:
    def test_updates_fields(self, catalog_service, create_product, test_actor_id):
        product = create_product("UP-1")
        updated = catalog_service.update_product(
            product.id, ProductPatch(name="Renamed", brand="Brand", tags=("New",)), test_actor_id
        )
        assert updated.name == "Renamed"
        assert updated.brand == "Brand"
        assert updated.tags == ["new"]
        assert updated.updated_by_id == test_actor_id

    def test_sku_merge(self, catalog_service, create_product, test_actor_id):
        product = create_product("KEEP-1", "DROP-1")

        updated = catalog_service.update_product(
            product.id,
            ProductPatch(
                skus=(
                    SkuSpec(code="keep-1", retail_price=Decimal("199.00")),
                    SkuSpec(code="ADD-1"),
                    SkuSpec(),
                )
            ),
            test_actor_id,
        )

        by_code = {s.code: s for s in updated.skus}
        assert by_code["KEEP-1"].retail_price == Decimal("199.00")
        assert by_code["KEEP-1"].status == SkuStatus.ACTIVE.value
        assert by_code["DROP-1"].status == SkuStatus.ARCHIVED.value
        assert "ADD-1" in by_code
        assert len(updated.skus) == 4

    def test_own_codes_are_not_duplicates(self, catalog_service, create_product, test_actor_id):
        product = create_product("SELF-1")
        catalog_service.update_product(
            product.id, ProductPatch(skus=(SkuSpec(code="SELF-1"),)), test_actor_id
        )

    def test_code_of_other_product_is_duplicate(
        self, catalog_service, create_product, test_actor_id
    ):
        create_product("TAKEN-1")
        product = create_product("MINE-1")
        with pytest.raises(DuplicateSkuCodeError):
            catalog_service.update_product(
                product.id,
                ProductPatch(skus=(SkuSpec(code="MINE-1"), SkuSpec(code="TAKEN-1"))),
                test_actor_id,
            )

    def test_initial_stock_rejected_on_update(self, catalog_service, create_product, test_actor_id):
        product = create_product("IS-1")
        with pytest.raises(ValidationError):
            catalog_service.update_product(
                product.id,
                ProductPatch(skus=(SkuSpec(code="IS-1", initial_stock=Decimal("3")),)),
                test_actor_id,
            )

    def test_unknown_product(self, catalog_service, test_actor_id):
        with pytest.raises(ProductNotFoundError):
            catalog_service.update_product(uuid4(), ProductPatch(name="X"), test_actor_id)


class TestArchiveProduct:
    def test_soft_deletes(self, session, catalog_service, create_product, test_actor_id):
        product = create_product("AR-1", "AR-2")

        archived = catalog_service.archive_product(product.id, test_actor_id)

        assert archived.is_active is False
        assert {s.status for s in archived.skus} == {SkuStatus.ARCHIVED.value}
        assert _count(session, Sku) >= 2
