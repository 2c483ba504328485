"""
Input DTO validation and value helpers.

DTOs validate and normalize at construction, so services only ever see
trimmed, upper-cased codes and Decimal amounts.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import (
    CustomerInfo,
    MovementFilter,
    MovementRequest,
    OrderLineSpec,
    OrderSpec,
    Page,
    ProductFilter,
    ProductSpec,
    SkuSpec,
    VendorSpec,
    WarehouseSpec,
)
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.domain.values import (
    MovementType,
    ReferenceType,
    SalesChannel,
    normalize_attributes,
    signed_delta,
)
from stock_kernel.exceptions import ValidationError


class TestSignedDelta:
    def test_in_adds(self):
        assert signed_delta(MovementType.IN, Decimal("5")) == Decimal("5")

    def test_out_subtracts(self):
        assert signed_delta(MovementType.OUT, Decimal("5")) == Decimal("-5")

    def test_adj_applies_as_given(self):
        assert signed_delta(MovementType.ADJ, Decimal("-3")) == Decimal("-3")
        assert signed_delta(MovementType.ADJ, Decimal("3")) == Decimal("3")


class TestAttributes:
    def test_flat_values_accepted(self):
        attrs = normalize_attributes({"color": "Black", "size": 42, "weight": 0.3, "wireless": True})
        assert attrs == {"color": "Black", "size": 42, "weight": 0.3, "wireless": True}

    @pytest.mark.parametrize("value", [{"nested": 1}, [1, 2], None])
    def test_nested_or_null_values_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_attributes({"bad": value})


class TestSkuSpec:
    def test_code_is_trimmed_and_upper_cased(self):
        assert SkuSpec(code="  wbh-001-blk ").code == "WBH-001-BLK"

    def test_blank_code_means_generate(self):
        assert SkuSpec(code="   ").code is None

    def test_prices_must_not_be_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            SkuSpec(code="A", retail_price=Decimal("-1"))
        assert exc_info.value.field == "retail_price"

    def test_float_input_becomes_exact_decimal(self):
        assert SkuSpec(code="A", retail_price=149.99).retail_price == Decimal("149.99")

    def test_vendor_lead_time_defaults_to_seven_days(self):
        vendor = VendorSpec(vendor_name="Acme", vendor_sku="AC-1")
        assert vendor.lead_time_days == 7

    def test_vendor_lead_time_not_negative(self):
        with pytest.raises(ValidationError):
            VendorSpec(vendor_name="Acme", vendor_sku="AC-1", lead_time_days=-1)


class TestProductSpec:
    def test_name_required(self):
        with pytest.raises(ValidationError):
            ProductSpec(name="  ", skus=(SkuSpec(code="A"),))

    def test_name_length_limit(self):
        with pytest.raises(ValidationError):
            ProductSpec(name="x" * 201, skus=(SkuSpec(code="A"),))

    def test_tags_lower_cased_and_deduplicated(self):
        spec = ProductSpec(name="P", skus=(SkuSpec(code="A"),), tags=("Audio", "audio", " BT "))
        assert spec.tags == ("audio", "bt")


class TestMovementRequest:
    def test_normalizes_code_and_quantity(self):
        request = MovementRequest(
            product_id=uuid4(),
            sku_code=" wbh-001-blk",
            quantity="10",
            movement_type="in",
            warehouse_id=uuid4(),
            reference_type="purchase",
            actor_id=uuid4(),
        )
        assert request.sku_code == "WBH-001-BLK"
        assert request.quantity == Decimal("10")
        assert request.movement_type == MovementType.IN
        assert request.reference_type == ReferenceType.PURCHASE

    def test_unknown_movement_type(self):
        with pytest.raises(ValidationError):
            MovementRequest(
                product_id=uuid4(),
                sku_code="A",
                quantity=1,
                movement_type="MOVE",
                warehouse_id=uuid4(),
                reference_type=ReferenceType.PURCHASE,
                actor_id=uuid4(),
            )

    def test_notes_length_limit(self):
        with pytest.raises(ValidationError):
            MovementRequest(
                product_id=uuid4(),
                sku_code="A",
                quantity=1,
                movement_type=MovementType.IN,
                warehouse_id=uuid4(),
                reference_type=ReferenceType.PURCHASE,
                actor_id=uuid4(),
                notes="n" * 501,
            )


class TestOrderSpec:
    def test_line_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrderLineSpec(sku_code="A", product_id=uuid4(), quantity=0)

    def test_discount_percent_range(self):
        with pytest.raises(ValidationError):
            OrderLineSpec(sku_code="A", product_id=uuid4(), quantity=1, discount_percent=101)

    def test_channel_parsed_case_insensitively(self):
        spec = OrderSpec(lines=(), warehouse_id=uuid4(), channel="b2b")
        assert spec.channel == SalesChannel.B2B

    def test_customer_email_format(self):
        with pytest.raises(ValidationError):
            CustomerInfo(name="Maria", email="not-an-email")


class TestWarehouseSpec:
    def test_code_limit(self):
        with pytest.raises(ValidationError):
            WarehouseSpec(code="ABCDEFGHIJK", name="Too long")

    def test_tax_rate_range(self):
        with pytest.raises(ValidationError):
            WarehouseSpec(code="WH1", name="W", default_tax_rate=Decimal("1.5"))


class TestFilters:
    def test_defaults(self):
        f = ProductFilter()
        assert (f.page, f.limit, f.sort) == (1, 20, "-created_at")
        assert f.offset == 0

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_paging_bounds(self, kwargs):
        with pytest.raises(ValidationError):
            ProductFilter(**kwargs)

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationError):
            ProductFilter(sort="-price")

    def test_movement_filter_normalizes_sku(self):
        assert MovementFilter(sku_code="abc").sku_code == "ABC"

    def test_total_pages(self):
        assert Page(items=(), total=41, page=1, limit=20).total_pages == 3
        assert Page(items=(), total=0, page=1, limit=20).total_pages == 0


class TestStockDefaults:
    def test_builtin_defaults(self):
        defaults = StockDefaults()
        assert defaults.default_tax_rate == Decimal("0.24")
        assert defaults.allow_negative_stock is False
        assert defaults.low_stock_threshold == Decimal("10")
        assert defaults.order_number_prefix == "ORD"

    def test_rejects_bad_tax_rate(self):
        with pytest.raises(ValueError):
            StockDefaults(default_tax_rate=Decimal("2"))

    def test_rejects_zero_width(self):
        with pytest.raises(ValueError):
            StockDefaults(order_number_width=0)
