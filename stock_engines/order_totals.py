"""
Order Totals Engine - Derive order amounts from line items.

Pure function with no I/O.  The tax rate is provided by the caller (the
fulfilling warehouse's rate).

Formula:
    line_subtotal = quantity * unit_price
    line_discount = line_subtotal * discount_percent / 100
    line_total    = line_subtotal - line_discount
    subtotal      = sum(line_total)
    taxable_base  = subtotal - discount_amount
    tax_amount    = taxable_base * tax_rate
    total         = taxable_base + tax_amount

All arithmetic is Decimal with no intermediate rounding, so recomputing
from the same inputs always yields identical results and
``total == subtotal - discount_amount + tax_amount`` holds exactly.

Usage:
    from decimal import Decimal
    from stock_engines.order_totals import PricedLine, compute_totals

    totals = compute_totals(
        lines=[PricedLine(quantity=Decimal("2"), unit_price=Decimal("149.99"))],
        discount_amount=Decimal("0"),
        tax_rate=Decimal("0.24"),
    )
    print(totals.total)  # 371.9752
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Protocol, Sequence

from stock_engines.tracer import traced_engine
from stock_kernel.exceptions import EmptyOrderError, ValidationError

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Wide enough that no product of Numeric(38, 9) inputs is ever rounded.
_PRECISION = 96


class LineAmounts(Protocol):
    """Anything carrying the three priced-line inputs."""

    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal


@dataclass(frozen=True)
class PricedLine:
    """A line whose unit price is already resolved."""

    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal = ZERO


@dataclass(frozen=True)
class OrderTotals:
    """
    Derived order amounts.

    ``line_totals`` is positional: entry ``i`` belongs to input line ``i``.
    """

    line_totals: tuple[Decimal, ...]
    subtotal: Decimal
    discount_amount: Decimal
    taxable_base: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal


def compute_line_total(line: LineAmounts) -> Decimal:
    """Total of one line after its percentage discount."""
    line_subtotal = line.quantity * line.unit_price
    line_discount = line_subtotal * line.discount_percent / HUNDRED
    return line_subtotal - line_discount


def _validate_line(index: int, line: LineAmounts) -> None:
    if line.quantity <= ZERO:
        raise ValidationError(f"lines[{index}].quantity", "must be greater than 0")
    if line.unit_price < ZERO:
        raise ValidationError(f"lines[{index}].unit_price", "must be >= 0")
    if not ZERO <= line.discount_percent <= HUNDRED:
        raise ValidationError(
            f"lines[{index}].discount_percent", "must be between 0 and 100"
        )


@traced_engine(
    "order_totals",
    "1.0",
    fingerprint_fields=("lines", "discount_amount", "tax_rate"),
)
def compute_totals(
    lines: Sequence[LineAmounts],
    discount_amount: Decimal,
    tax_rate: Decimal,
) -> OrderTotals:
    """
    Compute line totals, subtotal, tax and total for an order.

    Raises:
        EmptyOrderError: If ``lines`` is empty.
        ValidationError: On non-positive quantity, negative price, discount
            percent outside [0, 100], negative discount amount, discount
            amount larger than the subtotal, or tax rate outside [0, 1].
    """
    if not lines:
        raise EmptyOrderError()
    if discount_amount < ZERO:
        raise ValidationError("discount_amount", "must be >= 0")
    if not ZERO <= tax_rate <= ONE:
        raise ValidationError("tax_rate", "must be between 0 and 1")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        line_totals = []
        for index, line in enumerate(lines):
            _validate_line(index, line)
            line_totals.append(compute_line_total(line))

        subtotal = sum(line_totals, ZERO)
        if discount_amount > subtotal:
            raise ValidationError(
                "discount_amount",
                f"{discount_amount} exceeds order subtotal {subtotal}",
            )
        taxable_base = subtotal - discount_amount
        tax_amount = taxable_base * tax_rate
        total = taxable_base + tax_amount

    return OrderTotals(
        line_totals=tuple(line_totals),
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_base=taxable_base,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total=total,
    )
