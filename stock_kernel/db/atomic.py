"""
Module: stock_kernel.db.atomic
Responsibility: Dialect-aware building blocks for storage-level atomic
    writes: insert-or-ignore of keyed counter rows.
Architecture position: Kernel > DB.  Used by the reconciler (stock levels)
    and the sequence service (order-number counters).

Counter rows are created on demand with ``INSERT ... ON CONFLICT DO
NOTHING`` and then mutated with a single ``UPDATE ... SET x = x + :d``.
Neither step reads a value and writes back a computed one, so concurrent
callers cannot lose updates.
"""

from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def insert_ignore(session: Session, table: Table, values: dict[str, Any]) -> None:
    """
    Insert ``values`` into ``table`` unless a unique key already exists.

    Raises:
        ValueError: If the bound dialect has no ON CONFLICT support.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
    else:
        raise ValueError(f"insert_ignore not supported for dialect '{dialect}'")
    session.execute(stmt)
