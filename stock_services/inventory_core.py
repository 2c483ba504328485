"""
stock_services.inventory_core -- the transaction-owning facade.

Responsibility:
    Exposes every catalog, ledger, order, warehouse and report operation
    as one method that opens a session, wires the kernel services for it,
    runs the operation, converts the result to frozen records and commits.

Architecture position:
    Services -- imperative shell over the kernel.  Kernel services only
    flush; this class is the single place that commits or rolls back.

Invariants enforced:
    - One transaction per call: either every write of the call is
      committed or none is.
    - Results are converted to records BEFORE commit, so no ORM instance
      escapes a closed session.
    - Every call runs under a bound LogContext (correlation_id, actor_id).

Failure modes:
    - StockKernelError subclasses propagate unchanged after rollback.
    - IntegrityError (a constraint backstop fired) becomes ConflictError.
    - Any other exception is logged with its traceback and re-raised as
      InternalError, chained to the original.

Usage:
    from stock_services import InventoryCore

    core = InventoryCore(get_session_factory(), clock=SystemClock())
    product = core.create_product(spec, actor_id=user_id)
    movement = core.append_stock_movement(request)
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Sequence
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    MovementFilter,
    MovementRecord,
    MovementRequest,
    OrderFilter,
    OrderLineSpec,
    OrderRecord,
    OrderSpec,
    Page,
    ProductFilter,
    ProductPatch,
    ProductRecord,
    ProductSpec,
    SkuLookup,
    StockDiscrepancy,
    StockLevelRecord,
    WarehousePatch,
    WarehouseRecord,
    WarehouseSpec,
)
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.domain.values import OrderStatus, PaymentMethod, PaymentStatus
from stock_kernel.exceptions import ConflictError, InternalError, StockKernelError
from stock_kernel.logging_config import LogContext, configure_logging, get_logger
from stock_kernel.selectors import (
    CatalogSelector,
    MovementSelector,
    OrderSelector,
    StockSelector,
    WarehouseSelector,
)
from stock_kernel.services import (
    CatalogService,
    InventoryReconciler,
    OrderNumberService,
    OrderService,
    StockLedger,
    WarehouseService,
)

logger = get_logger("services.inventory_core")


class _Services:
    """Kernel services sharing one session, built once per call."""

    def __init__(self, session: Session, clock: Clock, defaults: StockDefaults):
        self.session = session
        self.reconciler = InventoryReconciler(session, clock)
        self.ledger = StockLedger(session, clock, self.reconciler)
        self.catalog = CatalogService(session, clock, self.ledger, defaults)
        self.warehouses = WarehouseService(session, clock, defaults)
        self.orders = OrderService(
            session,
            clock,
            ledger=self.ledger,
            numbers=OrderNumberService(session, clock, defaults),
            defaults=defaults,
        )


class InventoryCore:
    """
    Public entry point of the inventory ledger and order engine.

    Contract:
        Receives a session factory, a Clock and StockDefaults.  Every
        public method is one unit of work.

    Non-goals:
        - Does NOT retry.  Callers decide whether a ConflictError or
          InvalidTransitionError is worth another attempt.
        - Does NOT authenticate; ``actor_id`` is taken as given.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        defaults: StockDefaults | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._defaults = defaults or StockDefaults()

    @classmethod
    def from_config(cls, config, clock: Clock | None = None) -> InventoryCore:
        """
        Initialize the engine from a StockConfig and build a core on it.

        Also installs the append-only listeners, so this is the one call an
        application needs at startup.
        """
        from stock_config.bridges import engine_kwargs, log_level, to_stock_defaults
        from stock_kernel.db.engine import get_session_factory, init_engine_from_url
        from stock_kernel.db.immutability import register_immutability_listeners

        configure_logging(level=log_level(config))
        init_engine_from_url(config.database.url, **engine_kwargs(config))
        register_immutability_listeners()
        return cls(get_session_factory(), clock=clock, defaults=to_stock_defaults(config))

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        actor_id: UUID | None = None,
        read_only: bool = False,
    ) -> Iterator[Session]:
        session = self._session_factory()
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id, actor_id=actor_id):
            try:
                yield session
                if read_only:
                    session.rollback()
                else:
                    session.commit()
            except StockKernelError as exc:
                session.rollback()
                logger.info(
                    "operation_rejected",
                    extra={"operation": operation, "error_code": exc.code},
                )
                raise
            except IntegrityError as exc:
                session.rollback()
                logger.warning(
                    "operation_conflict",
                    extra={"operation": operation, "detail": str(exc.orig)},
                )
                raise ConflictError(f"Conflicting write during {operation}") from exc
            except Exception as exc:
                session.rollback()
                logger.error(
                    "operation_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise InternalError(operation) from exc
            finally:
                session.close()

    def _services(self, session: Session) -> _Services:
        return _Services(session, self._clock, self._defaults)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_product(
        self,
        spec: ProductSpec,
        actor_id: UUID,
        warehouse_id: UUID | None = None,
    ) -> ProductRecord:
        with self._unit_of_work("create_product", actor_id) as session:
            product = self._services(session).catalog.create_product(spec, actor_id, warehouse_id)
            return ProductRecord.from_model(product)

    def update_product(
        self,
        product_id: UUID,
        patch: ProductPatch,
        actor_id: UUID,
    ) -> ProductRecord:
        with self._unit_of_work("update_product", actor_id) as session:
            product = self._services(session).catalog.update_product(product_id, patch, actor_id)
            return ProductRecord.from_model(product)

    def archive_product(self, product_id: UUID, actor_id: UUID) -> ProductRecord:
        with self._unit_of_work("archive_product", actor_id) as session:
            product = self._services(session).catalog.archive_product(product_id, actor_id)
            return ProductRecord.from_model(product)

    def get_product(self, product_id: UUID) -> ProductRecord:
        with self._unit_of_work("get_product", read_only=True) as session:
            return CatalogSelector(session).get_product(product_id)

    def find_by_sku_code(self, code: str) -> SkuLookup:
        with self._unit_of_work("find_by_sku_code", read_only=True) as session:
            return CatalogSelector(session).find_by_sku_code(code)

    def find_by_barcode(self, barcode: str) -> SkuLookup:
        with self._unit_of_work("find_by_barcode", read_only=True) as session:
            return CatalogSelector(session).find_by_barcode(barcode)

    def list_products(self, filters: ProductFilter | None = None) -> Page[ProductRecord]:
        with self._unit_of_work("list_products", read_only=True) as session:
            return CatalogSelector(session).list_products(filters)

    # ------------------------------------------------------------------
    # Warehouses
    # ------------------------------------------------------------------

    def create_warehouse(self, spec: WarehouseSpec, actor_id: UUID) -> WarehouseRecord:
        with self._unit_of_work("create_warehouse", actor_id) as session:
            warehouse = self._services(session).warehouses.create_warehouse(spec, actor_id)
            return WarehouseRecord.from_model(warehouse)

    def update_warehouse(
        self,
        warehouse_id: UUID,
        patch: WarehousePatch,
        actor_id: UUID,
    ) -> WarehouseRecord:
        with self._unit_of_work("update_warehouse", actor_id) as session:
            warehouse = self._services(session).warehouses.update_warehouse(
                warehouse_id, patch, actor_id
            )
            return WarehouseRecord.from_model(warehouse)

    def deactivate_warehouse(self, warehouse_id: UUID, actor_id: UUID) -> WarehouseRecord:
        with self._unit_of_work("deactivate_warehouse", actor_id) as session:
            warehouse = self._services(session).warehouses.deactivate_warehouse(
                warehouse_id, actor_id
            )
            return WarehouseRecord.from_model(warehouse)

    def get_warehouse(self, warehouse_id: UUID) -> WarehouseRecord:
        with self._unit_of_work("get_warehouse", read_only=True) as session:
            return WarehouseSelector(session).get_warehouse(warehouse_id)

    def list_warehouses(self, active_only: bool = True) -> list[WarehouseRecord]:
        with self._unit_of_work("list_warehouses", read_only=True) as session:
            return WarehouseSelector(session).list_warehouses(active_only)

    # ------------------------------------------------------------------
    # Stock ledger
    # ------------------------------------------------------------------

    def append_stock_movement(self, request: MovementRequest) -> MovementRecord:
        with self._unit_of_work("append_stock_movement", request.actor_id) as session:
            movement = self._services(session).ledger.append_movement(request)
            with LogContext.bind(movement_id=movement.id):
                return MovementRecord.from_model(movement)

    def append_batch(self, requests: Sequence[MovementRequest]) -> list[MovementRecord]:
        actor_id = requests[0].actor_id if requests else None
        with self._unit_of_work("append_batch", actor_id) as session:
            movements = self._services(session).ledger.append_batch(requests)
            return [MovementRecord.from_model(m) for m in movements]

    def transfer(
        self,
        product_id: UUID,
        sku_code: str,
        quantity: Decimal,
        from_warehouse_id: UUID,
        to_warehouse_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> tuple[MovementRecord, MovementRecord]:
        with self._unit_of_work("transfer", actor_id) as session:
            outbound, inbound = self._services(session).ledger.transfer(
                product_id,
                sku_code,
                quantity,
                from_warehouse_id,
                to_warehouse_id,
                actor_id,
                notes,
            )
            return MovementRecord.from_model(outbound), MovementRecord.from_model(inbound)

    def correct_movement(
        self,
        movement_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> MovementRecord:
        with self._unit_of_work("correct_movement", actor_id) as session:
            with LogContext.bind(movement_id=movement_id):
                correction = self._services(session).ledger.correct_movement(
                    movement_id, actor_id, notes
                )
                return MovementRecord.from_model(correction)

    def record_count(
        self,
        product_id: UUID,
        sku_code: str,
        warehouse_id: UUID,
        counted_quantity: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> MovementRecord | None:
        with self._unit_of_work("record_count", actor_id) as session:
            movement = self._services(session).ledger.record_count(
                product_id, sku_code, warehouse_id, counted_quantity, actor_id, notes
            )
            return None if movement is None else MovementRecord.from_model(movement)

    def get_movement(self, movement_id: UUID) -> MovementRecord:
        with self._unit_of_work("get_movement", read_only=True) as session:
            return MovementSelector(session).get_movement(movement_id)

    def list_movements(self, filters: MovementFilter | None = None) -> Page[MovementRecord]:
        with self._unit_of_work("list_movements", read_only=True) as session:
            return MovementSelector(session).list_movements(filters)

    # ------------------------------------------------------------------
    # Stock reports
    # ------------------------------------------------------------------

    def on_hand(self, sku_code: str, warehouse_id: UUID | None = None) -> Decimal:
        with self._unit_of_work("on_hand", read_only=True) as session:
            return StockSelector(session).on_hand(sku_code, warehouse_id)

    def stock_levels(self, warehouse_id: UUID | None = None) -> list[StockLevelRecord]:
        with self._unit_of_work("stock_levels", read_only=True) as session:
            return StockSelector(session).levels(warehouse_id)

    def low_stock(
        self,
        threshold: Decimal | None = None,
        warehouse_id: UUID | None = None,
    ) -> list[StockLevelRecord]:
        if threshold is None:
            threshold = self._defaults.low_stock_threshold
        with self._unit_of_work("low_stock", read_only=True) as session:
            return StockSelector(session).low_stock(threshold, warehouse_id)

    def find_discrepancies(self) -> list[StockDiscrepancy]:
        with self._unit_of_work("find_discrepancies", read_only=True) as session:
            discrepancies = StockSelector(session).find_discrepancies()
        if discrepancies:
            logger.warning(
                "stock_discrepancies_found",
                extra={"count": len(discrepancies)},
            )
        return discrepancies

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, spec: OrderSpec, actor_id: UUID) -> OrderRecord:
        with self._unit_of_work("create_order", actor_id) as session:
            order = self._services(session).orders.create_order(spec, actor_id)
            with LogContext.bind(order_id=order.id):
                return OrderRecord.from_model(order)

    def replace_lines(
        self,
        order_id: UUID,
        lines: Sequence[OrderLineSpec],
        actor_id: UUID,
        discount_amount: Decimal | None = None,
    ) -> OrderRecord:
        with self._unit_of_work("replace_lines", actor_id) as session:
            with LogContext.bind(order_id=order_id):
                order = self._services(session).orders.replace_lines(
                    order_id, lines, actor_id, discount_amount
                )
                return OrderRecord.from_model(order)

    def confirm_order(self, order_id: UUID, actor_id: UUID) -> OrderRecord:
        with self._unit_of_work("confirm_order", actor_id) as session:
            with LogContext.bind(order_id=order_id):
                order = self._services(session).orders.confirm_order(order_id, actor_id)
                return OrderRecord.from_model(order)

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> OrderRecord:
        with self._unit_of_work("cancel_order", actor_id) as session:
            with LogContext.bind(order_id=order_id):
                order = self._services(session).orders.cancel_order(order_id, actor_id)
                return OrderRecord.from_model(order)

    def update_order_status(
        self,
        order_id: UUID,
        status: OrderStatus | str,
        actor_id: UUID,
    ) -> OrderRecord:
        with self._unit_of_work("update_order_status", actor_id) as session:
            with LogContext.bind(order_id=order_id):
                order = self._services(session).orders.update_order_status(
                    order_id, status, actor_id
                )
                return OrderRecord.from_model(order)

    def update_payment_status(
        self,
        order_id: UUID,
        payment_status: PaymentStatus | str,
        actor_id: UUID,
        payment_method: PaymentMethod | str | None = None,
    ) -> OrderRecord:
        with self._unit_of_work("update_payment_status", actor_id) as session:
            with LogContext.bind(order_id=order_id):
                order = self._services(session).orders.update_payment_status(
                    order_id, payment_status, actor_id, payment_method
                )
                return OrderRecord.from_model(order)

    def get_order(self, order_id: UUID) -> OrderRecord:
        with self._unit_of_work("get_order", read_only=True) as session:
            return OrderSelector(session).get_order(order_id)

    def get_by_number(self, order_number: str) -> OrderRecord:
        with self._unit_of_work("get_by_number", read_only=True) as session:
            return OrderSelector(session).get_by_number(order_number)

    def list_orders(self, filters: OrderFilter | None = None) -> Page[OrderRecord]:
        with self._unit_of_work("list_orders", read_only=True) as session:
            return OrderSelector(session).list_orders(filters)
