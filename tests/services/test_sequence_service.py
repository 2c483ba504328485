"""Named counters and per-day order numbers."""

from stock_kernel.domain.policy import StockDefaults
from stock_kernel.services.sequence_service import OrderNumberService, SequenceService


class TestSequenceService:
    def test_first_value_is_one(self, session):
        sequences = SequenceService(session)
        assert sequences.current_value("order:20240101") is None
        assert sequences.next_value("order:20240101") == 1
        assert sequences.next_value("order:20240101") == 2
        assert sequences.current_value("order:20240101") == 2

    def test_names_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("order:a")
        sequences.next_value("order:a")
        assert sequences.next_value("order:b") == 1

    def test_rolled_back_savepoint_returns_value(self, session):
        sequences = SequenceService(session)
        sequences.next_value("order:x")
        savepoint = session.begin_nested()
        sequences.next_value("order:x")
        savepoint.rollback()
        assert sequences.current_value("order:x") == 1


class TestOrderNumbers:
    def test_numbering_restarts_each_day(self, session, deterministic_clock):
        numbers = OrderNumberService(session, deterministic_clock)
        assert numbers.next_order_number() == "ORD-20240101-0001"
        assert numbers.next_order_number() == "ORD-20240101-0002"

        deterministic_clock.advance(24 * 3600)

        assert numbers.next_order_number() == "ORD-20240102-0001"

    def test_custom_prefix(self, session, deterministic_clock):
        numbers = OrderNumberService(
            session, deterministic_clock, StockDefaults(order_number_prefix="SO")
        )
        assert numbers.next_order_number() == "SO-20240101-0001"
