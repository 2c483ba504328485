"""
OrderService: creation, pricing, lifecycle and its stock effects.

The headline scenario: two Wireless Headphones at 149.99 in a warehouse
taxing 24% give subtotal 299.98, tax 71.9952 and total 371.9752, and
confirming the order issues 2 units from stock.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from stock_kernel.domain.dtos import CustomerInfo, OrderLineSpec, OrderSpec, ProductPatch, SkuSpec
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.domain.values import (
    MovementType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReferenceType,
    SalesChannel,
)
from stock_kernel.exceptions import (
    EmptyOrderError,
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    SkuNotFoundError,
    ValidationError,
)
from stock_kernel.models.order import Order
from stock_kernel.models.stock import StockMovement
from stock_kernel.services import OrderService


@pytest.fixture
def headphones(create_product, warehouse):
    return create_product(
        "WBH-001-BLK", initial_stock=Decimal("50"), warehouse_id=warehouse.id
    )


def _order_movements(session, order):
    return list(
        session.execute(
            select(StockMovement)
            .where(StockMovement.reference_id == str(order.id))
            .order_by(StockMovement.occurred_at, StockMovement.id)
        ).scalars()
    )


class TestCreateOrder:
    def test_prices_totals_and_number(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(
                warehouse,
                (headphones, "WBH-001-BLK", 2),
                customer=CustomerInfo(name="Maria Papadopoulou", email="maria@example.com"),
            ),
            test_actor_id,
        )

        assert order.order_number == "ORD-20240101-0001"
        assert order.status == OrderStatus.DRAFT.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.lines[0].unit_price == Decimal("149.99")
        assert order.subtotal == Decimal("299.98")
        assert order.tax_rate == Decimal("0.24")
        assert order.tax_amount == Decimal("71.9952")
        assert order.total == Decimal("371.9752")
        assert order.customer_name == "Maria Papadopoulou"

    def test_numbers_increase_within_a_day(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        numbers = [
            order_service.create_order(
                order_spec(warehouse, (headphones, "WBH-001-BLK", 1)), test_actor_id
            ).order_number
            for _ in range(3)
        ]
        assert numbers == ["ORD-20240101-0001", "ORD-20240101-0002", "ORD-20240101-0003"]

    def test_number_grows_past_padding(
        self, session, deterministic_clock, ledger, order_spec, headphones, warehouse, test_actor_id
    ):
        service = OrderService(
            session, deterministic_clock, ledger=ledger, defaults=StockDefaults(order_number_width=1)
        )
        numbers = [
            service.create_order(
                order_spec(warehouse, (headphones, "WBH-001-BLK", 1)), test_actor_id
            ).order_number
            for _ in range(10)
        ]
        assert numbers[8] == "ORD-20240101-9"
        assert numbers[9] == "ORD-20240101-10"

    def test_b2b_uses_wholesale_price(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 1), channel=SalesChannel.B2B),
            test_actor_id,
        )
        assert order.lines[0].unit_price == Decimal("120.00")

    def test_explicit_price_and_line_discount(
        self, order_service, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            OrderSpec(
                lines=(
                    OrderLineSpec(
                        sku_code="WBH-001-BLK",
                        product_id=headphones.id,
                        quantity=Decimal("2"),
                        unit_price=Decimal("100"),
                        discount_percent=Decimal("10"),
                    ),
                ),
                warehouse_id=warehouse.id,
                discount_amount=Decimal("20"),
            ),
            test_actor_id,
        )
        assert order.lines[0].line_total == Decimal("180")
        assert order.subtotal == Decimal("180")
        assert order.tax_amount == Decimal("38.4")
        assert order.total == Decimal("198.4")

    def test_uses_warehouse_tax_rate(
        self, order_service, order_spec, headphones, create_warehouse, test_actor_id
    ):
        islands = create_warehouse(code="WH-ISL", default_tax_rate=Decimal("0.17"))
        order = order_service.create_order(
            order_spec(islands, (headphones, "WBH-001-BLK", 1)), test_actor_id
        )
        assert order.tax_rate == Decimal("0.17")

    def test_unknown_sku(self, order_service, order_spec, headphones, warehouse, test_actor_id):
        with pytest.raises(SkuNotFoundError) as exc_info:
            order_service.create_order(
                order_spec(warehouse, (headphones, "NOPE-1", 1)), test_actor_id
            )
        assert exc_info.value.code == "UNKNOWN_SKU"

    def test_archived_sku_rejected(
        self, order_service, catalog_service, order_spec, create_product, warehouse, test_actor_id
    ):
        product = create_product("OLD-1", "NEW-1")
        catalog_service.update_product(
            product.id, ProductPatch(skus=(SkuSpec(code="NEW-1"),)), test_actor_id
        )
        with pytest.raises(ValidationError):
            order_service.create_order(order_spec(warehouse, (product, "OLD-1", 1)), test_actor_id)

    def test_empty_order(self, order_service, order_spec, warehouse, test_actor_id):
        with pytest.raises(EmptyOrderError):
            order_service.create_order(order_spec(warehouse), test_actor_id)

    def test_discount_larger_than_subtotal(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        with pytest.raises(ValidationError):
            order_service.create_order(
                order_spec(
                    warehouse, (headphones, "WBH-001-BLK", 1), discount_amount=Decimal("500")
                ),
                test_actor_id,
            )

    def test_creation_does_not_touch_stock(
        self, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id
    ):
        order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 5)), test_actor_id
        )
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("50")


class TestConfirmOrder:
    def test_issues_stock(
        self, session, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )

        confirmed = order_service.confirm_order(order.id, test_actor_id)

        assert confirmed.status == OrderStatus.CONFIRMED.value
        assert confirmed.confirmed_at is not None
        assert confirmed.total == Decimal("371.9752")
        movements = _order_movements(session, order)
        assert len(movements) == 1
        assert movements[0].movement_type == MovementType.OUT.value
        assert movements[0].reference_type == ReferenceType.SALE.value
        assert movements[0].quantity == Decimal("2")
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("48")

    def test_insufficient_stock_leaves_order_draft(
        self, session, order_service, order_spec, create_product, reconciler, warehouse, test_actor_id
    ):
        plenty = create_product("PL-1", initial_stock=Decimal("10"), warehouse_id=warehouse.id)
        scarce = create_product("SC-1", initial_stock=Decimal("1"), warehouse_id=warehouse.id)
        order = order_service.create_order(
            order_spec(warehouse, (plenty, "PL-1", 3), (scarce, "SC-1", 2)), test_actor_id
        )

        with pytest.raises(InsufficientStockError) as exc_info:
            order_service.confirm_order(order.id, test_actor_id)

        assert exc_info.value.sku_code == "SC-1"
        status = session.execute(select(Order.status).where(Order.id == order.id)).scalar_one()
        assert status == OrderStatus.DRAFT.value
        assert _order_movements(session, order) == []
        assert reconciler.quantity("PL-1", warehouse.id) == Decimal("10")

    def test_confirms_only_once(
        self, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        order_service.confirm_order(order.id, test_actor_id)

        with pytest.raises(InvalidTransitionError):
            order_service.confirm_order(order.id, test_actor_id)
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("48")

    def test_unknown_order(self, order_service, test_actor_id):
        with pytest.raises(OrderNotFoundError):
            order_service.confirm_order(uuid4(), test_actor_id)


class TestStatusFlow:
    @pytest.fixture
    def confirmed(self, order_service, order_spec, headphones, warehouse, test_actor_id):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        return order_service.confirm_order(order.id, test_actor_id)

    def test_full_lifecycle(self, order_service, confirmed, test_actor_id):
        for status in ("PICKING", "PACKED", "SHIPPED", "DELIVERED"):
            order = order_service.update_order_status(confirmed.id, status, test_actor_id)
            assert order.status == status

    def test_skipping_a_step_is_rejected(self, order_service, confirmed, test_actor_id):
        with pytest.raises(InvalidTransitionError) as exc_info:
            order_service.update_order_status(confirmed.id, OrderStatus.SHIPPED, test_actor_id)
        assert exc_info.value.from_status == "CONFIRMED"

    def test_unknown_status_string(self, order_service, confirmed, test_actor_id):
        with pytest.raises(ValidationError):
            order_service.update_order_status(confirmed.id, "LOST", test_actor_id)

    def test_update_to_confirmed_delegates(
        self, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 4)), test_actor_id
        )
        order_service.update_order_status(order.id, "confirmed", test_actor_id)
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("46")

    def test_delivered_is_terminal(self, order_service, confirmed, test_actor_id):
        for status in ("PICKING", "PACKED", "SHIPPED", "DELIVERED"):
            order_service.update_order_status(confirmed.id, status, test_actor_id)
        with pytest.raises(InvalidTransitionError):
            order_service.cancel_order(confirmed.id, test_actor_id)


class TestCancelOrder:
    def test_cancel_draft_has_no_stock_effect(
        self, session, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        cancelled = order_service.cancel_order(order.id, test_actor_id)
        assert cancelled.status == OrderStatus.CANCELLED.value
        assert _order_movements(session, order) == []

    @pytest.mark.parametrize("steps", [(), ("PICKING",), ("PICKING", "PACKED")])
    def test_cancel_after_confirm_restocks(
        self, session, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id, steps
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        order_service.confirm_order(order.id, test_actor_id)
        for status in steps:
            order_service.update_order_status(order.id, status, test_actor_id)

        order_service.cancel_order(order.id, test_actor_id)

        movements = _order_movements(session, order)
        assert sorted((m.movement_type, m.reference_type) for m in movements) == [
            (MovementType.IN.value, ReferenceType.RETURN.value),
            (MovementType.OUT.value, ReferenceType.SALE.value),
        ]
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("50")

    def test_cancel_after_ship_does_not_restock(
        self, session, order_service, order_spec, reconciler, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        order_service.confirm_order(order.id, test_actor_id)
        for status in ("PICKING", "PACKED", "SHIPPED"):
            order_service.update_order_status(order.id, status, test_actor_id)

        order_service.cancel_order(order.id, test_actor_id)

        assert len(_order_movements(session, order)) == 1
        assert reconciler.quantity("WBH-001-BLK", warehouse.id) == Decimal("48")

    def test_cancelled_is_terminal(self, order_service, order_spec, headphones, warehouse, test_actor_id):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 1)), test_actor_id
        )
        order_service.cancel_order(order.id, test_actor_id)
        with pytest.raises(InvalidTransitionError):
            order_service.confirm_order(order.id, test_actor_id)


class TestReplaceLines:
    def test_replaces_and_recomputes(
        self, order_service, order_spec, create_product, headphones, warehouse, test_actor_id
    ):
        mouse = create_product("MS-9", retail_price=Decimal("20"))
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )

        updated = order_service.replace_lines(
            order.id,
            [
                OrderLineSpec(sku_code="MS-9", product_id=mouse.id, quantity=Decimal("3")),
                OrderLineSpec(sku_code="WBH-001-BLK", product_id=headphones.id, quantity=Decimal("1")),
            ],
            test_actor_id,
        )

        assert [(line.line_no, line.sku_code) for line in updated.lines] == [
            (1, "MS-9"),
            (2, "WBH-001-BLK"),
        ]
        assert updated.subtotal == Decimal("209.99")
        assert updated.total == updated.subtotal + updated.tax_amount
        assert updated.order_number == order.order_number

    def test_only_while_draft(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 2)), test_actor_id
        )
        order_service.confirm_order(order.id, test_actor_id)
        with pytest.raises(ValidationError):
            order_service.replace_lines(
                order.id,
                [OrderLineSpec(sku_code="WBH-001-BLK", product_id=headphones.id, quantity=1)],
                test_actor_id,
            )


class TestPaymentStatus:
    def test_updates_payment(self, order_service, order_spec, headphones, warehouse, test_actor_id):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 1)), test_actor_id
        )
        updated = order_service.update_payment_status(
            order.id, "paid", test_actor_id, payment_method=PaymentMethod.CARD
        )
        assert updated.payment_status == PaymentStatus.PAID.value
        assert updated.payment_method == PaymentMethod.CARD.value
        assert updated.status == OrderStatus.DRAFT.value

    def test_rejects_unknown_payment_status(
        self, order_service, order_spec, headphones, warehouse, test_actor_id
    ):
        order = order_service.create_order(
            order_spec(warehouse, (headphones, "WBH-001-BLK", 1)), test_actor_id
        )
        with pytest.raises(ValidationError):
            order_service.update_payment_status(order.id, "MAYBE", test_actor_id)


def test_order_count_unchanged_after_rejected_create(
    session, order_service, order_spec, headphones, warehouse, test_actor_id
):
    before = session.execute(select(func.count()).select_from(Order)).scalar_one()
    with pytest.raises(SkuNotFoundError):
        order_service.create_order(order_spec(warehouse, (headphones, "GONE", 1)), test_actor_id)
    assert session.execute(select(func.count()).select_from(Order)).scalar_one() == before
