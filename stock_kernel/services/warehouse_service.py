"""
WarehouseService -- create and maintain warehouses and their stock policy.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - Warehouse codes are unique (pre-check + UNIQUE constraint).
    - Codes never change after creation.
    - Unset policy fields take StockDefaults.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import WarehousePatch, WarehouseSpec
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.exceptions import (
    DuplicateWarehouseCodeError,
    ValidationError,
    WarehouseNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.warehouse import Warehouse
from stock_kernel.services.base import BaseService, touch

logger = get_logger("services.warehouse")

_PATCHABLE = (
    "name",
    "address",
    "city",
    "postal_code",
    "country",
    "allow_negative_stock",
    "default_tax_rate",
    "is_active",
)


def resolve_warehouse(session: Session, warehouse_id: UUID, require_active: bool = True) -> Warehouse:
    """
    Load a warehouse by id.

    Raises:
        WarehouseNotFoundError: If no warehouse has this id.
        ValidationError: If ``require_active`` and the warehouse is inactive.
    """
    warehouse = session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise WarehouseNotFoundError(str(warehouse_id))
    if require_active and not warehouse.is_active:
        raise ValidationError("warehouse_id", f"warehouse {warehouse.code} is inactive")
    return warehouse


class WarehouseService(BaseService[Warehouse]):
    """Writes to the warehouses table."""

    def __init__(self, session: Session, clock: Clock, defaults: StockDefaults | None = None):
        super().__init__(session)
        self._clock = clock
        self._defaults = defaults or StockDefaults()

    def create_warehouse(self, spec: WarehouseSpec, actor_id: UUID) -> Warehouse:
        """
        Create a warehouse.

        Raises:
            DuplicateWarehouseCodeError: If the code is taken.
        """
        existing = self.session.execute(
            select(Warehouse.id).where(Warehouse.code == spec.code)
        ).first()
        if existing is not None:
            raise DuplicateWarehouseCodeError(spec.code)

        now = self._clock.now_utc()
        warehouse = Warehouse(
            code=spec.code,
            name=spec.name,
            address=spec.address,
            city=spec.city,
            postal_code=spec.postal_code,
            country=spec.country or self._defaults.default_country,
            allow_negative_stock=(
                self._defaults.allow_negative_stock
                if spec.allow_negative_stock is None
                else spec.allow_negative_stock
            ),
            default_tax_rate=(
                self._defaults.default_tax_rate
                if spec.default_tax_rate is None
                else spec.default_tax_rate
            ),
            is_active=True,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self.session.add(warehouse)
        self.session.flush()

        logger.info(
            "warehouse_created",
            extra={"warehouse_id": str(warehouse.id), "warehouse_code": warehouse.code},
        )
        return warehouse

    def update_warehouse(
        self,
        warehouse_id: UUID,
        patch: WarehousePatch,
        actor_id: UUID,
    ) -> Warehouse:
        warehouse = resolve_warehouse(self.session, warehouse_id, require_active=False)
        changed = []
        for name in _PATCHABLE:
            value = getattr(patch, name)
            if value is not None and getattr(warehouse, name) != value:
                setattr(warehouse, name, value)
                changed.append(name)
        if changed:
            touch(warehouse, actor_id, self._clock)
            self.session.flush()
        logger.info(
            "warehouse_updated",
            extra={"warehouse_id": str(warehouse.id), "fields": changed},
        )
        return warehouse

    def deactivate_warehouse(self, warehouse_id: UUID, actor_id: UUID) -> Warehouse:
        """Soft-delete: new movements and orders against it are rejected."""
        warehouse = resolve_warehouse(self.session, warehouse_id, require_active=False)
        if warehouse.is_active:
            warehouse.is_active = False
            touch(warehouse, actor_id, self._clock)
            self.session.flush()
            logger.info(
                "warehouse_deactivated",
                extra={"warehouse_id": str(warehouse.id), "warehouse_code": warehouse.code},
            )
        return warehouse
