"""
Order lifecycle state machine (``stock_kernel.domain.order_workflow``).

Responsibility
--------------
Pure value objects describing which order status changes are legal and
which of them move stock.  The OrderService consults ``ORDER_WORKFLOW``
before every status write.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* Status moves forward one step at a time; CANCELLED is reachable from
  every non-terminal state.

::

    DRAFT -> CONFIRMED -> PICKING -> PACKED -> SHIPPED -> DELIVERED
      |          |           |          |         |
      +----------+-----------+----------+---------+--> CANCELLED
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stock_kernel.domain.values import OrderStatus
from stock_kernel.logging_config import get_logger

logger = get_logger("domain.order_workflow")


class StockEffect(str, Enum):
    """What a transition does to stock."""

    NONE = "none"
    ISSUE = "issue"  # one OUT/SALE movement per line
    RESTOCK = "restock"  # one IN/RETURN movement per line


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""

    from_state: str
    to_state: str
    action: str
    stock_effect: StockEffect = StockEffect.NONE


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"initial_state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"transition {t.action!r} references unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"terminal state {t.from_state!r} has outgoing transition")

    def find(self, from_state: str, to_state: str) -> Transition | None:
        """The transition from ``from_state`` to ``to_state``, if legal."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def targets(self, from_state: str) -> tuple[str, ...]:
        """States reachable from ``from_state`` in one step."""
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


_S = OrderStatus

_FORWARD = (
    Transition(_S.DRAFT.value, _S.CONFIRMED.value, "confirm", StockEffect.ISSUE),
    Transition(_S.CONFIRMED.value, _S.PICKING.value, "start_picking"),
    Transition(_S.PICKING.value, _S.PACKED.value, "pack"),
    Transition(_S.PACKED.value, _S.SHIPPED.value, "ship"),
    Transition(_S.SHIPPED.value, _S.DELIVERED.value, "deliver"),
)

# Cancelling after stock was issued but before it left the building puts it back.
_CANCEL = (
    Transition(_S.DRAFT.value, _S.CANCELLED.value, "cancel"),
    Transition(_S.CONFIRMED.value, _S.CANCELLED.value, "cancel", StockEffect.RESTOCK),
    Transition(_S.PICKING.value, _S.CANCELLED.value, "cancel", StockEffect.RESTOCK),
    Transition(_S.PACKED.value, _S.CANCELLED.value, "cancel", StockEffect.RESTOCK),
    Transition(_S.SHIPPED.value, _S.CANCELLED.value, "cancel"),
)

ORDER_WORKFLOW = Workflow(
    name="sales_order",
    description="Sales order fulfilment",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in OrderStatus),
    transitions=_FORWARD + _CANCEL,
    terminal_states=(_S.DELIVERED.value, _S.CANCELLED.value),
)

logger.debug(
    "order_workflow_defined",
    extra={
        "workflow": ORDER_WORKFLOW.name,
        "states": list(ORDER_WORKFLOW.states),
        "transition_count": len(ORDER_WORKFLOW.transitions),
    },
)
