"""
Module: stock_kernel.models.sequence
Responsibility: Named counter rows backing order-number allocation.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per counter name (UNIQUE).  Counters are only incremented
      with ``UPDATE ... SET current_value = current_value + 1``; the
      aggregate-max-plus-one pattern is never used.
"""

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value, e.g.
    ``order:20240101`` for the order numbers of one calendar day.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (UniqueConstraint("name", name="uq_sequence_name"),)

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
