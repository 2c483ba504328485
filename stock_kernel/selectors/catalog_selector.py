"""
CatalogSelector -- read paths over products and SKUs.

Lookups by id, SKU code (case-insensitive) and SKU barcode, and the
filtered, sorted, paginated product listing.
"""

from uuid import UUID

from sqlalchemy import Select, func, or_, select

from stock_kernel.db.types import decimal_cmp
from stock_kernel.domain.dtos import Page, ProductFilter, ProductRecord, SkuLookup, SkuRecord
from stock_kernel.exceptions import ProductNotFoundError, SkuNotFoundError
from stock_kernel.models.catalog import Product, Sku
from stock_kernel.models.stock import StockLevel
from stock_kernel.selectors.base import BaseSelector

_SORT_COLUMNS = {
    "name": Product.name,
    "brand": Product.brand,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


class CatalogSelector(BaseSelector[Product]):
    """Read-only catalog queries returning ProductRecord / SkuLookup."""

    def get_product(self, product_id: UUID) -> ProductRecord:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return ProductRecord.from_model(product)

    def find_by_sku_code(self, code: str) -> SkuLookup:
        """Resolve a SKU by code, ignoring case and surrounding whitespace."""
        normalized = (code or "").strip().upper()
        sku = self.session.execute(
            select(Sku).where(Sku.code == normalized)
        ).scalar_one_or_none()
        if sku is None:
            raise SkuNotFoundError(normalized)
        return self._lookup(sku)

    def find_by_barcode(self, barcode: str) -> SkuLookup:
        """Resolve a SKU by its barcode."""
        barcode = (barcode or "").strip()
        sku = self.session.execute(
            select(Sku).where(Sku.barcode == barcode)
        ).scalar_one_or_none()
        if sku is None:
            raise SkuNotFoundError(f"barcode:{barcode}")
        return self._lookup(sku)

    @staticmethod
    def _lookup(sku: Sku) -> SkuLookup:
        return SkuLookup(
            product=ProductRecord.from_model(sku.product),
            sku=SkuRecord.from_model(sku),
        )

    def list_products(self, filters: ProductFilter | None = None) -> Page[ProductRecord]:
        filters = filters or ProductFilter()
        query = self._filtered(filters)

        column = _SORT_COLUMNS[filters.sort.lstrip("-")]
        if filters.sort.startswith("-"):
            query = query.order_by(column.desc(), Product.id)
        else:
            query = query.order_by(column.asc(), Product.id)

        return self._paginate(query, filters.page, filters.limit, ProductRecord.from_model)

    def _filtered(self, filters: ProductFilter) -> Select:
        query = select(Product)

        if filters.search:
            term = filters.search.strip().lower()
            sku_match = select(Sku.product_id).where(
                func.lower(Sku.code).contains(term, autoescape=True)
            )
            query = query.where(
                or_(
                    func.lower(Product.name).contains(term, autoescape=True),
                    func.lower(Product.description).contains(term, autoescape=True),
                    Product.id.in_(sku_match),
                )
            )
        if filters.category_id is not None:
            query = query.where(Product.category_id == filters.category_id)
        if filters.brand:
            query = query.where(
                func.lower(Product.brand).contains(filters.brand.strip().lower(), autoescape=True)
            )
        if filters.is_active is not None:
            query = query.where(Product.is_active.is_(filters.is_active))
        if filters.sku_status is not None:
            query = query.where(
                Product.id.in_(
                    select(Sku.product_id).where(Sku.status == filters.sku_status.value)
                )
            )
        if filters.in_stock is not None:
            stocked = (
                select(Sku.product_id)
                .join(StockLevel, StockLevel.sku_code == Sku.code)
                .where(decimal_cmp(StockLevel.quantity, 0) > 0)
            )
            if filters.in_stock:
                query = query.where(Product.id.in_(stocked))
            else:
                query = query.where(Product.id.not_in(stocked))
        return query
