"""
OrderService -- the order engine.

Responsibility:
    Creates orders from line specs (validated against the catalog, priced,
    totalled, numbered), and moves them through the order lifecycle,
    issuing stock on confirmation and returning it on cancellation.

Architecture position:
    Kernel > Services.  Uses the pure ``stock_engines.order_totals`` engine
    for every amount, OrderNumberService for numbering and StockLedger for
    stock.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - Totals are computed explicitly by ``compute_totals`` at creation,
      line replacement and confirmation; never by a persistence hook.
    - Status changes follow ORDER_WORKFLOW one step at a time.  Each is a
      compare-and-set ``UPDATE orders SET status = :to WHERE id = :id AND
      status = :from``; a concurrent change makes it match no row and the
      caller gets InvalidTransitionError.  DRAFT -> CONFIRMED therefore
      happens at most once.
    - Confirmation appends one OUT/SALE movement per line inside a
      SAVEPOINT together with the status change: all or nothing.
    - Cancelling a CONFIRMED, PICKING or PACKED order appends one
      IN/RETURN movement per line, likewise atomically.

Failure modes:
    - EmptyOrderError, ValidationError: malformed orders, archived SKUs,
      inactive warehouses, discount larger than subtotal.
    - SkuNotFoundError, WarehouseNotFoundError, OrderNotFoundError.
    - InvalidTransitionError: illegal or lost status change.
    - InsufficientStockError: confirmation would oversell.
    - DuplicateOrderNumberError: number already taken (constraint backstop).
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_engines.order_totals import OrderTotals, PricedLine, compute_totals
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import MovementRequest, OrderLineSpec, OrderSpec
from stock_kernel.domain.order_workflow import ORDER_WORKFLOW, StockEffect
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
    DuplicateOrderNumberError,
    EmptyOrderError,
    InvalidTransitionError,
    OrderNotFoundError,
    SkuNotFoundError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import Sku
from stock_kernel.models.order import Order, OrderLine
from stock_kernel.services.base import BaseService, touch
from stock_kernel.services.sequence_service import OrderNumberService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.warehouse_service import resolve_warehouse

logger = get_logger("services.order")


class OrderService(BaseService[Order]):
    """Creates orders and drives their status."""

    model = Order
    not_found_error = OrderNotFoundError

    def __init__(
        self,
        session: Session,
        clock: Clock,
        ledger: StockLedger | None = None,
        numbers: OrderNumberService | None = None,
        defaults: StockDefaults | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._defaults = defaults or StockDefaults()
        self._ledger = ledger or StockLedger(session, clock)
        self._numbers = numbers or OrderNumberService(session, clock, self._defaults)

    # ------------------------------------------------------------------
    # Creation and lines
    # ------------------------------------------------------------------

    def create_order(self, spec: OrderSpec, actor_id: UUID) -> Order:
        """Validate, price, total and number a new DRAFT order."""
        if not spec.lines:
            raise EmptyOrderError()

        warehouse = resolve_warehouse(self.session, spec.warehouse_id)
        priced = self._price_lines(spec.lines, spec.channel)
        totals = compute_totals(
            lines=priced,
            discount_amount=spec.discount_amount,
            tax_rate=warehouse.default_tax_rate,
        )

        order_number = self._numbers.next_order_number()
        customer = spec.customer
        now = self._now()
        order = Order(
            order_number=order_number,
            status=OrderStatus.DRAFT.value,
            channel=spec.channel.value,
            warehouse_id=warehouse.id,
            customer_id=spec.customer_id,
            customer_name=customer.name if customer else None,
            customer_email=customer.email if customer else None,
            customer_phone=customer.phone if customer else None,
            customer_address=customer.address if customer else None,
            payment_method=spec.payment_method.value if spec.payment_method else None,
            payment_status=PaymentStatus.PENDING.value,
            notes=spec.notes,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        order.lines = self._build_lines(spec.lines, priced, totals)
        self._apply_totals(order, totals)

        try:
            with self.session.begin_nested():
                self.session.add(order)
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateOrderNumberError(order_number) from exc

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "line_count": len(order.lines),
                "total": str(order.total),
            },
        )
        return order

    def _price_lines(
        self,
        lines: Sequence[OrderLineSpec],
        channel: SalesChannel,
    ) -> list[PricedLine]:
        """Resolve each line's SKU and unit price."""
        priced = []
        for index, line in enumerate(lines):
            sku = self.session.execute(
                select(Sku).where(Sku.code == line.sku_code)
            ).scalar_one_or_none()
            if sku is None or sku.product_id != line.product_id:
                raise SkuNotFoundError(line.sku_code, str(line.product_id))
            if not sku.is_active:
                raise ValidationError(
                    f"lines[{index}].sku_code", f"SKU {sku.code} is archived"
                )
            unit_price = line.unit_price
            if unit_price is None:
                unit_price = (
                    sku.wholesale_tier1 if channel == SalesChannel.B2B else sku.retail_price
                )
            priced.append(
                PricedLine(
                    quantity=line.quantity,
                    unit_price=unit_price,
                    discount_percent=line.discount_percent,
                )
            )
        return priced

    @staticmethod
    def _build_lines(
        specs: Sequence[OrderLineSpec],
        priced: Sequence[PricedLine],
        totals: OrderTotals,
    ) -> list[OrderLine]:
        return [
            OrderLine(
                line_no=line_no,
                sku_code=spec.sku_code,
                product_id=spec.product_id,
                quantity=price.quantity,
                unit_price=price.unit_price,
                discount_percent=price.discount_percent,
                line_total=line_total,
            )
            for line_no, (spec, price, line_total) in enumerate(
                zip(specs, priced, totals.line_totals), start=1
            )
        ]

    @staticmethod
    def _apply_totals(order: Order, totals: OrderTotals) -> None:
        order.discount_amount = totals.discount_amount
        order.subtotal = totals.subtotal
        order.tax_rate = totals.tax_rate
        order.tax_amount = totals.tax_amount
        order.total = totals.total

    def replace_lines(
        self,
        order_id: UUID,
        lines: Sequence[OrderLineSpec],
        actor_id: UUID,
        discount_amount=None,
    ) -> Order:
        """Replace all lines of a DRAFT order and recompute its totals."""
        order = self._load(order_id)
        if not order.is_draft:
            raise ValidationError(
                "status", f"lines can only change while DRAFT (order is {order.status})"
            )
        if not lines:
            raise EmptyOrderError()

        warehouse = resolve_warehouse(self.session, order.warehouse_id)
        priced = self._price_lines(lines, SalesChannel(order.channel))
        totals = compute_totals(
            lines=priced,
            discount_amount=order.discount_amount if discount_amount is None else discount_amount,
            tax_rate=warehouse.default_tax_rate,
        )

        # Old lines must be gone before new ones reuse their line numbers.
        order.lines.clear()
        self.session.flush()
        order.lines.extend(self._build_lines(lines, priced, totals))
        self._apply_totals(order, totals)
        touch(order, actor_id, self._clock)
        self.session.flush()

        logger.info(
            "order_lines_replaced",
            extra={
                "order_id": str(order.id),
                "line_count": len(order.lines),
                "total": str(order.total),
            },
        )
        return order

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _transition(self, order: Order, to_status: OrderStatus):
        transition = ORDER_WORKFLOW.find(order.status, to_status.value)
        if transition is None:
            raise InvalidTransitionError(order.order_number, order.status, to_status.value)
        return transition

    def _compare_and_set(
        self,
        order: Order,
        from_status: str,
        to_status: OrderStatus,
        actor_id: UUID,
        **values,
    ) -> None:
        result = self.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == from_status)
            .values(
                status=to_status.value,
                updated_by_id=actor_id,
                updated_at=self._now(),
                **values,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            logger.warning(
                "order_transition_lost",
                extra={
                    "order_id": str(order.id),
                    "from_status": from_status,
                    "to_status": to_status.value,
                },
            )
            raise InvalidTransitionError(order.order_number, from_status, to_status.value)

    def _move_stock(
        self,
        order: Order,
        movement_type: MovementType,
        reference_type: ReferenceType,
        actor_id: UUID,
    ) -> None:
        for line in order.lines:
            self._ledger.append_movement(
                MovementRequest(
                    product_id=line.product_id,
                    sku_code=line.sku_code,
                    quantity=line.quantity,
                    movement_type=movement_type,
                    warehouse_id=order.warehouse_id,
                    reference_type=reference_type,
                    reference_id=str(order.id),
                    actor_id=actor_id,
                    notes=f"Order {order.order_number}",
                )
            )

    def confirm_order(self, order_id: UUID, actor_id: UUID) -> Order:
        """
        DRAFT -> CONFIRMED: recompute totals and issue stock for every line.

        Either the status change and all movements are applied, or none.
        """
        order = self._load(order_id)
        from_status = order.status
        self._transition(order, OrderStatus.CONFIRMED)

        try:
            with self.session.begin_nested():
                self._compare_and_set(
                    order,
                    from_status,
                    OrderStatus.CONFIRMED,
                    actor_id,
                    confirmed_at=self._now(),
                )
                totals = compute_totals(
                    lines=list(order.lines),
                    discount_amount=order.discount_amount,
                    tax_rate=order.tax_rate,
                )
                for line, line_total in zip(order.lines, totals.line_totals):
                    line.line_total = line_total
                self._apply_totals(order, totals)
                self._move_stock(order, MovementType.OUT, ReferenceType.SALE, actor_id)
                self.session.flush()
        except Exception:
            self.session.expire(order)
            raise

        logger.info(
            "order_confirmed",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "line_count": len(order.lines),
            },
        )
        return order

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> Order:
        """
        Cancel from any non-terminal status.

        Stock already issued and not yet shipped (CONFIRMED, PICKING,
        PACKED) is returned with IN/RETURN movements.
        """
        order = self._load(order_id)
        from_status = order.status
        transition = self._transition(order, OrderStatus.CANCELLED)

        try:
            with self.session.begin_nested():
                self._compare_and_set(
                    order,
                    from_status,
                    OrderStatus.CANCELLED,
                    actor_id,
                    cancelled_at=self._now(),
                )
                if transition.stock_effect == StockEffect.RESTOCK:
                    self._move_stock(order, MovementType.IN, ReferenceType.RETURN, actor_id)
        except Exception:
            self.session.expire(order)
            raise

        logger.info(
            "order_cancelled",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "from_status": from_status,
                "restocked": transition.stock_effect == StockEffect.RESTOCK,
            },
        )
        return order

    def update_order_status(
        self,
        order_id: UUID,
        status: OrderStatus | str,
        actor_id: UUID,
    ) -> Order:
        """
        Move an order one step along its lifecycle.

        CONFIRMED delegates to ``confirm_order`` and CANCELLED to
        ``cancel_order`` so their stock effects always apply.
        """
        try:
            target = OrderStatus(str(getattr(status, "value", status)).upper())
        except ValueError as exc:
            raise ValidationError("status", f"unknown order status {status!r}") from exc

        if target == OrderStatus.CONFIRMED:
            return self.confirm_order(order_id, actor_id)
        if target == OrderStatus.CANCELLED:
            return self.cancel_order(order_id, actor_id)

        order = self._load(order_id)
        from_status = order.status
        self._transition(order, target)
        self._compare_and_set(order, from_status, target, actor_id)

        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(order.id),
                "from_status": from_status,
                "to_status": target.value,
            },
        )
        return order

    def update_payment_status(
        self,
        order_id: UUID,
        payment_status: PaymentStatus | str,
        actor_id: UUID,
        payment_method: PaymentMethod | str | None = None,
    ) -> Order:
        order = self._load(order_id)
        try:
            payment_status = PaymentStatus(str(getattr(payment_status, "value", payment_status)).upper())
            if payment_method is not None:
                payment_method = PaymentMethod(
                    str(getattr(payment_method, "value", payment_method)).upper()
                )
        except ValueError as exc:
            raise ValidationError("payment", str(exc)) from exc

        order.payment_status = payment_status.value
        if payment_method is not None:
            order.payment_method = payment_method.value
        touch(order, actor_id, self._clock)
        self.session.flush()

        logger.info(
            "order_payment_updated",
            extra={
                "order_id": str(order.id),
                "payment_status": order.payment_status,
                "payment_method": order.payment_method,
            },
        )
        return order

    def _now(self) -> datetime:
        return self._clock.now_utc()
