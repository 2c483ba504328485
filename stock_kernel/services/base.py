"""
Common base for the write-side kernel services.

A service is handed the caller's ``Session`` and only ever flushes.  It may
open a SAVEPOINT (``session.begin_nested()``) so that a multi-row write
either lands completely or not at all, but commit and rollback of the outer
transaction belong to whoever created the session: ``InventoryCore`` in
production, the fixtures in tests.  Reads live in ``stock_kernel.selectors``.
"""

from abc import ABC
from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base, TrackedBase
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


def touch(entity: TrackedBase, actor_id: UUID, clock: Clock) -> None:
    """Record a change to ``entity`` by ``actor_id`` at the clock's current time."""
    entity.updated_by_id = actor_id
    entity.updated_at = clock.now_utc()


class BaseService(ABC, Generic[ModelType]):
    """
    Subclasses that load their main entity by id set ``model`` and
    ``not_found_error`` and call ``_load``.
    """

    model: ClassVar[type[Base] | None] = None
    not_found_error: ClassVar[type[NotFoundError] | None] = None

    def __init__(self, session: Session):
        self.session = session

    def _load(self, entity_id: UUID) -> ModelType:
        entity = self.session.get(self.model, entity_id)
        if entity is None:
            raise self.not_found_error(str(entity_id))
        return entity
