"""Database layer - engine, base classes, types, and atomic helpers."""

from stock_kernel.db.base import Base, TrackedBase, UUIDString
from stock_kernel.db.engine import create_tables, get_engine, get_session_factory
from stock_kernel.db.types import to_decimal

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "to_decimal",
]
