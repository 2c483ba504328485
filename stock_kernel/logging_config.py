"""
Structured JSON logging for the stock kernel.

Every record is written as one JSON object per line:

    {"ts": "...", "level": "INFO", "logger": "stock_kernel.services.ledger",
     "message": "movement_appended", "correlation_id": "...",
     "actor_id": "...", "sku_code": "WBH-001-BLK", "delta": "-10", ...}

``message`` is always a snake_case event name; details travel in ``extra``.
Request-scoped fields (correlation id, acting user, the order or movement
being worked on) are bound once with ``LogContext.bind`` and added to every
record emitted inside the block.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Iterator, Mapping
from uuid import UUID

_LOGGER_PREFIX = "stock_kernel"


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """
    Request-scoped log fields held in one ContextVar.

    Each thread and each asyncio task sees its own mapping, so concurrent
    InventoryCore calls never mix their correlation ids.
    """

    FIELDS = (
        "correlation_id",
        "actor_id",
        "order_id",
        "movement_id",
        "warehouse_id",
    )

    _fields: ContextVar[Mapping[str, str]] = ContextVar("stock_log_context", default={})

    @classmethod
    def _merged(cls, values: Mapping[str, Any]) -> dict[str, str]:
        unknown = set(values) - set(cls.FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(cls._fields.get())
        merged.update({k: str(v) for k, v in values.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **values: Any) -> None:
        """Set fields for the rest of the current context.  None is ignored."""
        cls._fields.set(cls._merged(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **values: Any) -> Iterator[None]:
        """Set fields inside a ``with`` block; the previous ones come back on exit."""
        token = cls._fields.set(cls._merged(values))
        try:
            yield
        finally:
            cls._fields.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    # Quantities and money stay exact: Decimals are logged as strings.
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return repr(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # StockKernelError subclasses keep their details as attributes
        # (sku_code, available, requested, ...).
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
        return fields


# ---------------------------------------------------------------------------
# Loggers
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``stock_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect; ``level`` may be a number or a
    level name such as ``"DEBUG"``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
