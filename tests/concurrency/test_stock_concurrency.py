"""
Race safety under real multi-connection parallelism.

Every thread goes through InventoryCore, so each call is its own
committed transaction on its own connection.  Threads are released
together by a Barrier to maximize overlap.

On SQLite every transaction starts with BEGIN IMMEDIATE, so writers
serialize on the database lock.  On PostgreSQL (DATABASE_URL) the row
locks taken by the atomic UPDATEs serialize them instead.

Skip with: pytest -m "not concurrency"
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from stock_kernel.domain.dtos import (
    MovementFilter,
    MovementRequest,
    OrderLineSpec,
    OrderSpec,
    ProductSpec,
    SkuSpec,
    WarehouseSpec,
)
from stock_kernel.domain.values import MovementType, OrderStatus, ReferenceType
from stock_kernel.exceptions import InsufficientStockError, InvalidTransitionError

pytestmark = [pytest.mark.concurrency, pytest.mark.slow]


def _run_concurrently(n_threads: int, fn):
    """Run ``fn(i)`` on ``n_threads`` threads started together.

    Returns a list of (result, exception) pairs in thread order.
    """
    barrier = Barrier(n_threads)

    def worker(i):
        barrier.wait()
        try:
            return fn(i), None
        except Exception as exc:
            return None, exc

    with ThreadPoolExecutor(max_workers=n_threads) as pool:
        return list(pool.map(worker, range(n_threads)))


@pytest.fixture
def stocked(core, test_actor_id):
    """A warehouse with one SKU holding 20 units, committed."""
    warehouse = core.create_warehouse(WarehouseSpec(code="WH-RACE", name="Race"), test_actor_id)
    product = core.create_product(
        ProductSpec(
            name="Wireless Headphones",
            skus=(
                SkuSpec(
                    code="RACE-1",
                    retail_price=Decimal("149.99"),
                    initial_stock=Decimal("20"),
                ),
            ),
        ),
        test_actor_id,
        warehouse_id=warehouse.id,
    )
    return warehouse, product


class TestConcurrentStockMovements:
    def test_no_lost_updates_and_no_oversell(self, core, stocked, test_actor_id):
        warehouse, product = stocked

        def sell_one(_):
            return core.append_stock_movement(
                MovementRequest(
                    product_id=product.id,
                    sku_code="RACE-1",
                    quantity=Decimal("1"),
                    movement_type=MovementType.OUT,
                    warehouse_id=warehouse.id,
                    reference_type=ReferenceType.SALE,
                    actor_id=test_actor_id,
                )
            )

        results = _run_concurrently(30, sell_one)

        succeeded = [r for r, e in results if e is None]
        rejected = [e for _, e in results if e is not None]
        assert len(succeeded) == 20
        assert len(rejected) == 10
        assert all(isinstance(e, InsufficientStockError) for e in rejected)

        assert core.on_hand("RACE-1", warehouse.id) == Decimal("0")
        assert sorted(m.balance_after for m in succeeded) == [Decimal(i) for i in range(20)]
        assert core.find_discrepancies() == []

    def test_concurrent_receipts_all_counted(self, core, stocked, test_actor_id):
        warehouse, product = stocked

        def receive(i):
            return core.append_stock_movement(
                MovementRequest(
                    product_id=product.id,
                    sku_code="RACE-1",
                    quantity=Decimal(i + 1),
                    movement_type=MovementType.IN,
                    warehouse_id=warehouse.id,
                    reference_type=ReferenceType.PURCHASE,
                    actor_id=test_actor_id,
                )
            )

        results = _run_concurrently(10, receive)

        assert all(e is None for _, e in results)
        assert core.on_hand("RACE-1", warehouse.id) == Decimal("20") + sum(
            Decimal(i + 1) for i in range(10)
        )

    def test_concurrent_first_counts_post_one_adjustment(self, core, stocked, test_actor_id):
        warehouse, _ = stocked
        product = core.create_product(
            ProductSpec(
                name="Desk Lamp",
                skus=(SkuSpec(code="COUNT-1", retail_price=Decimal("39.90")),),
            ),
            test_actor_id,
        )
        assert all(level.sku_code != "COUNT-1" for level in core.stock_levels(warehouse.id))

        results = _run_concurrently(
            8,
            lambda _: core.record_count(
                product.id, "COUNT-1", warehouse.id, Decimal("5"), test_actor_id
            ),
        )

        assert all(e is None for _, e in results)
        adjustments = [r for r, _ in results if r is not None]
        assert len(adjustments) == 1
        assert adjustments[0].delta == Decimal("5")
        assert core.on_hand("COUNT-1", warehouse.id) == Decimal("5")
        movements = core.list_movements(MovementFilter(sku_code="COUNT-1"))
        assert movements.total == 1
        assert core.find_discrepancies() == []


class TestConcurrentOrders:
    def test_order_numbers_are_unique(self, core, stocked, test_actor_id):
        warehouse, product = stocked
        spec = OrderSpec(
            lines=(OrderLineSpec(sku_code="RACE-1", product_id=product.id, quantity=1),),
            warehouse_id=warehouse.id,
        )

        results = _run_concurrently(20, lambda _: core.create_order(spec, test_actor_id))

        assert all(e is None for _, e in results)
        numbers = sorted(r.order_number for r, _ in results)
        assert numbers == [f"ORD-20240101-{i:04d}" for i in range(1, 21)]

    def test_order_confirmed_exactly_once(self, core, stocked, test_actor_id):
        warehouse, product = stocked
        order = core.create_order(
            OrderSpec(
                lines=(OrderLineSpec(sku_code="RACE-1", product_id=product.id, quantity=3),),
                warehouse_id=warehouse.id,
            ),
            test_actor_id,
        )

        results = _run_concurrently(8, lambda _: core.confirm_order(order.id, test_actor_id))

        confirmed = [r for r, e in results if e is None]
        rejected = [e for _, e in results if e is not None]
        assert len(confirmed) == 1
        assert all(isinstance(e, InvalidTransitionError) for e in rejected)
        assert core.get_order(order.id).status == OrderStatus.CONFIRMED
        assert core.on_hand("RACE-1", warehouse.id) == Decimal("17")
