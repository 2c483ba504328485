"""
SequenceService -- named counters and order-number allocation.

Responsibility:
    Provides strictly increasing values for named sequences, and builds
    human-readable order numbers ``ORD-YYYYMMDD-NNNN`` from a per-day
    sequence.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by OrderService when an order is created.

Invariants enforced:
    - A counter row is created on demand with INSERT ... ON CONFLICT DO
      NOTHING and advanced with a single ``UPDATE ... SET current_value =
      current_value + 1 ... RETURNING current_value``.  The database row
      lock taken by that UPDATE serializes concurrent allocations for the
      same key, so two callers never receive the same value.  The
      aggregate-max-plus-one anti-pattern is FORBIDDEN.
    - Transactional: an increment is only visible once the caller's
      transaction commits; on rollback the value is returned.

Failure modes:
    - ValueError for dialects without ON CONFLICT support (see db.atomic).
"""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stock_kernel.db.atomic import insert_ignore
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.policy import StockDefaults
from stock_kernel.logging_config import get_logger
from stock_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Advance a named sequence and return its new value (first value is 1).

        Preconditions:
            - The caller is within an active database transaction.
        """
        table = SequenceCounter.__table__
        insert_ignore(
            self._session,
            table,
            {"name": sequence_name, "current_value": 0},
        )
        value = self._session.execute(
            update(table)
            .where(table.c.name == sequence_name)
            .values(current_value=table.c.current_value + 1)
            .returning(table.c.current_value)
        ).scalar_one()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()


class OrderNumberService:
    """
    Allocates order numbers ``{prefix}-{YYYYMMDD}-{NNNN}``.

    The date comes from the injected clock in UTC.  NNNN is the per-day
    sequence, zero-padded to ``order_number_width`` digits; it keeps
    growing past the padding width rather than wrapping.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        defaults: StockDefaults | None = None,
    ):
        self._sequences = SequenceService(session)
        self._clock = clock
        self._defaults = defaults or StockDefaults()

    @staticmethod
    def sequence_name(day_key: str) -> str:
        return f"order:{day_key}"

    def next_order_number(self) -> str:
        day_key = self._clock.now_utc().strftime("%Y%m%d")
        value = self._sequences.next_value(self.sequence_name(day_key))
        width = self._defaults.order_number_width
        number = f"{self._defaults.order_number_prefix}-{day_key}-{value:0{width}d}"
        logger.info("order_number_allocated", extra={"order_number": number})
        return number
