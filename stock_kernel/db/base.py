"""
Declarative base for every stock model.

All tables get a uuid4 primary key stored as a 36-character string, so the
same schema runs unchanged on SQLite and PostgreSQL.  Python ``Decimal``
annotations become ``ExactDecimal(38, 9)`` (db/types.py): quantities and
prices are never floats, on either database.  ``TrackedBase`` adds
who/when columns to the mutable entities (products, SKUs, warehouses,
orders); the ledger tables do not need them because a movement is written
once by one actor.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from stock_kernel.db.types import ExactDecimal

# Names for the constraints and indexes the models leave unnamed.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID held in a String(36) column; accepts UUIDs or their string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: ExactDecimal(),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds creation and last-update stamps.

    The services stamp ``created_at``/``updated_at`` from their injected
    clock, so audit times agree with ``occurred_at`` and the other
    business timestamps.  The database clock only fills in rows inserted
    outside the services; there is no ON UPDATE default.  ``created_by_id``
    is required, ``updated_by_id`` is filled in by the services on every
    change after the first.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now())
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
