"""
StockLedger -- the append-only store of stock movements.

Responsibility:
    Validates a movement request, resolves the product/SKU pair and the
    warehouse, has the InventoryReconciler apply the signed delta, and
    appends the immutable StockMovement record carrying the resulting
    balance.  Also provides the composite write paths built from single
    appends: batches, inter-warehouse transfers, corrections and stock
    counts.

Architecture position:
    Kernel > Services.  Called by CatalogService (opening stock),
    OrderService (confirmation and restock) and InventoryCore.

Invariants enforced:
    - Sign convention: IN and OUT carry quantity > 0; IN applies
      +quantity, OUT applies -quantity.  ADJ carries a signed, non-zero
      delta applied as given.  The record stores both.
    - Each append runs inside a SAVEPOINT: the stock level update and the
      movement row are written together or not at all.
    - Movements are never updated or deleted (db/immutability.py).  A
      correction is a new ADJ movement with the opposite delta, linked by
      ``corrects_id``; each movement is corrected at most once.
    - Timestamps come from the injected clock.

Failure modes:
    - InvalidQuantityError: zero quantity.
    - ValidationError: negative IN/OUT quantity, inactive warehouse,
      empty batch, transfer to the same warehouse.
    - SkuNotFoundError (UNKNOWN_SKU): product/SKU pair does not resolve.
    - WarehouseNotFoundError: unknown warehouse.
    - InsufficientStockError: from the reconciler.
    - MovementNotFoundError / MovementAlreadyCorrectedError: corrections.
"""

from decimal import Decimal
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import MovementRequest
from stock_kernel.domain.values import MovementType, ReferenceType, signed_delta
from stock_kernel.exceptions import (
    InvalidQuantityError,
    MovementAlreadyCorrectedError,
    MovementNotFoundError,
    SkuNotFoundError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import Sku
from stock_kernel.models.stock import StockMovement
from stock_kernel.services.base import BaseService
from stock_kernel.services.inventory_reconciler import InventoryReconciler
from stock_kernel.services.warehouse_service import resolve_warehouse

logger = get_logger("services.ledger")

ZERO = Decimal("0")


class StockLedger(BaseService[StockMovement]):
    """
    Appends stock movements.

    Non-goals:
        - Does NOT commit; callers own the transaction.
        - Does NOT read movements for listing (see MovementSelector).
    """

    model = StockMovement
    not_found_error = MovementNotFoundError

    def __init__(
        self,
        session: Session,
        clock: Clock,
        reconciler: InventoryReconciler | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._reconciler = reconciler or InventoryReconciler(session, clock)

    # ------------------------------------------------------------------
    # Single append
    # ------------------------------------------------------------------

    def append_movement(self, request: MovementRequest) -> StockMovement:
        """
        Append one movement and reconcile the stock level.

        Postconditions:
            The returned movement is flushed; ``balance_after`` is the
            stock level of (sku_code, warehouse_id) right after it.
        """
        return self._append(request)

    def _append(self, request: MovementRequest, corrects_id: UUID | None = None) -> StockMovement:
        self._check_quantity(request)

        with self.session.begin_nested():
            self.resolve_sku(request.product_id, request.sku_code)
            warehouse = resolve_warehouse(self.session, request.warehouse_id)

            delta = signed_delta(request.movement_type, request.quantity)
            balance = self._reconciler.apply(request.sku_code, delta, warehouse.id)
            now = self._clock.now_utc()

            movement = StockMovement(
                product_id=request.product_id,
                sku_code=request.sku_code,
                movement_type=request.movement_type.value,
                quantity=request.quantity,
                delta=delta,
                warehouse_id=warehouse.id,
                reference_type=request.reference_type.value,
                reference_id=request.reference_id,
                unit_cost=request.unit_cost,
                notes=request.notes,
                occurred_at=now,
                balance_after=balance,
                corrects_id=corrects_id,
                created_at=now,
                updated_at=now,
                created_by_id=request.actor_id,
            )
            self.session.add(movement)
            self.session.flush()

        logger.info(
            "movement_appended",
            extra={
                "movement_id": str(movement.id),
                "sku_code": movement.sku_code,
                "warehouse_id": str(movement.warehouse_id),
                "movement_type": movement.movement_type,
                "reference_type": movement.reference_type,
                "delta": str(delta),
                "balance_after": str(balance),
            },
        )
        return movement

    @staticmethod
    def _check_quantity(request: MovementRequest) -> None:
        if request.quantity == ZERO:
            raise InvalidQuantityError(request.sku_code, request.quantity)
        if request.movement_type != MovementType.ADJ and request.quantity < ZERO:
            raise ValidationError(
                "quantity",
                f"{request.movement_type.value} movements take a positive quantity; "
                "use ADJ for signed corrections",
            )

    def resolve_sku(self, product_id: UUID, sku_code: str) -> Sku:
        """
        Resolve a product/SKU pair.  ARCHIVED SKUs still resolve.

        Raises:
            SkuNotFoundError: If the code is unknown or belongs to another product.
        """
        sku = self.session.execute(
            select(Sku).where(Sku.code == sku_code)
        ).scalar_one_or_none()
        if sku is None or sku.product_id != product_id:
            raise SkuNotFoundError(sku_code, str(product_id))
        return sku

    # ------------------------------------------------------------------
    # Composite writes
    # ------------------------------------------------------------------

    def append_batch(self, requests: Sequence[MovementRequest]) -> list[StockMovement]:
        """Append several movements; if any fails, none is kept."""
        if not requests:
            raise ValidationError("requests", "batch must contain at least one movement")
        with self.session.begin_nested():
            movements = [self._append(request) for request in requests]
        logger.info("movement_batch_appended", extra={"count": len(movements)})
        return movements

    def transfer(
        self,
        product_id: UUID,
        sku_code: str,
        quantity: Decimal,
        from_warehouse_id: UUID,
        to_warehouse_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> tuple[StockMovement, StockMovement]:
        """
        Move stock between warehouses: OUT at the source, IN at the
        destination, both TRANSFER movements sharing one reference id.
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError("to_warehouse_id", "must differ from from_warehouse_id")

        transfer_id = str(uuid4())
        common = dict(
            product_id=product_id,
            sku_code=sku_code,
            quantity=quantity,
            reference_type=ReferenceType.TRANSFER,
            reference_id=transfer_id,
            actor_id=actor_id,
            notes=notes,
        )
        out_request = MovementRequest(
            movement_type=MovementType.OUT, warehouse_id=from_warehouse_id, **common
        )
        in_request = MovementRequest(
            movement_type=MovementType.IN, warehouse_id=to_warehouse_id, **common
        )

        with self.session.begin_nested():
            outbound = self._append(out_request)
            inbound = self._append(in_request)

        logger.info(
            "stock_transferred",
            extra={
                "transfer_id": transfer_id,
                "sku_code": outbound.sku_code,
                "from_warehouse_id": str(from_warehouse_id),
                "to_warehouse_id": str(to_warehouse_id),
                "quantity": str(outbound.quantity),
            },
        )
        return outbound, inbound

    def correct_movement(
        self,
        movement_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> StockMovement:
        """
        Reverse a movement by appending an ADJ with the opposite delta.

        The original row is never touched.

        Raises:
            MovementNotFoundError: Unknown movement.
            ValidationError: The movement is itself a correction.
            MovementAlreadyCorrectedError: A correction already exists.
            InsufficientStockError: Reversing would drive stock negative.
        """
        original = self._load(movement_id)
        if original.corrects_id is not None:
            raise ValidationError("movement_id", "a correction cannot itself be corrected")

        existing = self.session.execute(
            select(StockMovement.id).where(StockMovement.corrects_id == original.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise MovementAlreadyCorrectedError(str(original.id), str(existing))

        request = MovementRequest(
            product_id=original.product_id,
            sku_code=original.sku_code,
            quantity=-original.delta,
            movement_type=MovementType.ADJ,
            warehouse_id=original.warehouse_id,
            reference_type=ReferenceType.ADJUSTMENT,
            reference_id=str(original.id),
            actor_id=actor_id,
            notes=notes or f"Correction of movement {original.id}",
        )
        correction = self._append(request, corrects_id=original.id)
        logger.info(
            "movement_corrected",
            extra={
                "movement_id": str(original.id),
                "correction_id": str(correction.id),
            },
        )
        return correction

    def record_count(
        self,
        product_id: UUID,
        sku_code: str,
        warehouse_id: UUID,
        counted_quantity: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> StockMovement | None:
        """
        Record a physical stock count.

        Appends an ADJ for ``counted - current``; returns None when the count
        matches the cached level.  The level row stays locked from the read
        until the transaction ends.
        """
        if counted_quantity < ZERO:
            raise ValidationError("counted_quantity", "must be >= 0")

        sku_code = sku_code.strip().upper()
        with self.session.begin_nested():
            self.resolve_sku(product_id, sku_code)
            warehouse = resolve_warehouse(self.session, warehouse_id)

            current = self._reconciler.lock_level(sku_code, warehouse.id)
            difference = counted_quantity - current
            if difference == ZERO:
                logger.info(
                    "stock_count_matched",
                    extra={"sku_code": sku_code, "warehouse_id": str(warehouse.id)},
                )
                return None

            return self._append(
                MovementRequest(
                    product_id=product_id,
                    sku_code=sku_code,
                    quantity=difference,
                    movement_type=MovementType.ADJ,
                    warehouse_id=warehouse.id,
                    reference_type=ReferenceType.ADJUSTMENT,
                    actor_id=actor_id,
                    notes=notes or f"Stock count: {counted_quantity}",
                )
            )
