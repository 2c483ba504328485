"""
Module: stock_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, domain/
    and models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST
      NOT call session.add(), session.delete(), session.commit(), or
      session.flush().
    - DTO return convention: selectors return frozen records or computed
      results, NOT ORM model instances.
"""

from abc import ABC
from typing import Callable, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from stock_kernel.db.base import Base
from stock_kernel.domain.dtos import Page

ModelType = TypeVar("ModelType", bound=Base)
RecordType = TypeVar("RecordType")


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session

    def _paginate(
        self,
        query: Select,
        page: int,
        limit: int,
        to_record: Callable[[ModelType], RecordType],
    ) -> Page[RecordType]:
        """Count ``query``, then fetch one page of it."""
        total = self.session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        ).scalar_one()
        rows = self.session.execute(
            query.offset((page - 1) * limit).limit(limit)
        ).scalars()
        return Page(
            items=tuple(to_record(row) for row in rows),
            total=total,
            page=page,
            limit=limit,
        )
