"""
Append-only ledger and the stock-level audit.

Movements can be neither edited nor deleted through the ORM, SKU codes
and order numbers never change, and every cached level is explained by
the ledger.
"""

from decimal import Decimal

import pytest
from sqlalchemy import update

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.stock import StockLevel, StockMovement


@pytest.fixture
def movement(ledger, create_product, stock_movement, warehouse):
    product = create_product("IM-1")
    return ledger.append_movement(stock_movement(product, "IM-1", 10, warehouse))


class TestMovementImmutability:
    def test_update_rejected(self, session, movement):
        movement.notes = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_quantity_update_rejected(self, session, movement):
        movement.quantity = Decimal("1000")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "StockMovement"

    def test_delete_rejected(self, session, movement):
        session.delete(movement)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestIdentifierImmutability:
    def test_sku_code_cannot_change(self, session, create_product):
        product = create_product("FIX-1")
        product.skus[0].code = "FIX-2"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_order_number_cannot_change(
        self, session, order_service, order_spec, create_product, warehouse, test_actor_id
    ):
        product = create_product("ON-1")
        order = order_service.create_order(order_spec(warehouse, (product, "ON-1", 1)), test_actor_id)
        order.order_number = "ORD-19990101-0001"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestDiscrepancyAudit:
    def test_consistent_ledger_has_no_discrepancies(
        self, ledger, stock_selector, create_product, stock_movement, warehouse
    ):
        product = create_product("AU-1", initial_stock=Decimal("12"), warehouse_id=warehouse.id)
        ledger.append_movement(stock_movement(product, "AU-1", 5, warehouse))
        assert stock_selector.find_discrepancies() == []

    def test_tampered_level_is_reported(
        self, session, stock_selector, create_product, warehouse
    ):
        create_product("AU-2", initial_stock=Decimal("12"), warehouse_id=warehouse.id)
        session.execute(
            update(StockLevel.__table__)
            .where(StockLevel.__table__.c.sku_code == "AU-2")
            .values(quantity=Decimal("99"))
        )

        discrepancies = stock_selector.find_discrepancies()

        assert len(discrepancies) == 1
        found = discrepancies[0]
        assert found.sku_code == "AU-2"
        assert found.cached_quantity == Decimal("99")
        assert found.ledger_quantity == Decimal("12")
        assert found.difference == Decimal("87")

    def test_movement_rows_unchanged_after_correction(
        self, session, ledger, movement, test_actor_id
    ):
        ledger.correct_movement(movement.id, test_actor_id)
        session.expire(movement)
        original = session.get(StockMovement, movement.id)
        assert original.delta == Decimal("10")
        assert original.corrects_id is None
