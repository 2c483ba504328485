"""
ORM-level append-only enforcement for the stock ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements for ORM
objects reach the database.  We register listeners that check the rules
below and raise ImmutabilityViolationError, which aborts the flush:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule
----------------|--------------------------------------------------------
StockMovement   | Never updated, never deleted (corrections are new rows)
Sku             | ``code`` never changes once assigned
Order           | ``order_number`` never changes once assigned

Stock levels are written exclusively by Core UPDATE statements issued by the
InventoryReconciler and are not covered here; the ledger remains the source
of truth they are audited against (StockSelector.find_discrepancies).

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm import attributes

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_movement_immutability(mapper, connection, target):
    """Stock movements are facts; they are never modified."""
    raise _blocked(
        "StockMovement",
        str(target.id),
        "UPDATE",
        "Stock movements are immutable; append a correction instead",
    )


def _check_movement_delete(mapper, connection, target):
    raise _blocked(
        "StockMovement",
        str(target.id),
        "DELETE",
        "Stock movements cannot be deleted",
    )


def _changed_from(target, attr: str):
    """Return the committed value of ``attr`` if it is being changed, else None."""
    history = attributes.get_history(target, attr)
    if history.has_changes() and history.deleted:
        return history.deleted[0]
    return None


def _check_sku_code_immutability(mapper, connection, target):
    """SKU codes are referenced by movements and order lines by value."""
    previous = _changed_from(target, "code")
    if previous is not None and previous != target.code:
        raise _blocked(
            "Sku",
            str(target.id),
            "UPDATE",
            f"SKU code cannot change ({previous} -> {target.code})",
        )


def _check_order_number_immutability(mapper, connection, target):
    previous = _changed_from(target, "order_number")
    if previous is not None and previous != target.order_number:
        raise _blocked(
            "Order",
            str(target.id),
            "UPDATE",
            f"Order number cannot change ({previous} -> {target.order_number})",
        )


def _listeners():
    from stock_kernel.models.catalog import Sku
    from stock_kernel.models.order import Order
    from stock_kernel.models.stock import StockMovement

    return [
        (StockMovement, "before_update", _check_movement_immutability),
        (StockMovement, "before_delete", _check_movement_delete),
        (Sku, "before_update", _check_sku_code_immutability),
        (Order, "before_update", _check_order_number_immutability),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Registering twice is a no-op.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
