"""
Decimal coercion and exact decimal storage for quantities, prices and rates.

Nothing in the kernel is a float.  Values that arrive as floats (decoded
JSON, YAML config) are converted through their shortest repr, never through
their binary expansion.

PostgreSQL stores ``ExactDecimal`` columns as NUMERIC and does the
arithmetic itself.  SQLite has no exact decimal type (its NUMERIC affinity
is a 64-bit float), so there the columns hold canonical fixed-point text
and the SQL in this module routes addition, summing and comparison through
functions registered on every SQLite connection (``register_sqlite_functions``)
that compute with Python's ``Decimal``.
"""

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation

from sqlalchemy import Integer, Numeric, String, literal
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.elements import ClauseElement
from sqlalchemy.sql.functions import FunctionElement
from sqlalchemy.types import TypeDecorator

DEFAULT_PRECISION = 38
DEFAULT_SCALE = 9

# Wide enough for any Numeric(38, 9) value and for sums of them.
_ARITHMETIC = Context(prec=DEFAULT_PRECISION + 12, rounding=ROUND_HALF_UP)


def to_decimal(value, field: str = "value") -> Decimal:
    """
    Convert a numeric input into a finite Decimal.

    Floats go through ``repr`` so ``149.99`` becomes ``Decimal("149.99")``
    rather than its binary expansion.

    Raises:
        ValueError: If the value is not numeric, NaN or infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got bool")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"{field} is not a number: {value!r}") from exc
    else:
        raise ValueError(f"{field} must be numeric, got {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    return result


def to_fixed_point(value, precision: int = DEFAULT_PRECISION, scale: int = DEFAULT_SCALE) -> str:
    """
    Canonical text of ``value`` rounded to ``scale`` places, as NUMERIC would.

    Raises:
        ValueError: If the value does not fit in ``precision`` digits.
    """
    number = to_decimal(value)
    try:
        rounded = number.quantize(
            Decimal(1).scaleb(-scale), context=Context(prec=precision, rounding=ROUND_HALF_UP)
        )
    except InvalidOperation as exc:
        raise ValueError(
            f"{value!r} does not fit NUMERIC({precision}, {scale})"
        ) from exc
    if rounded.is_zero():
        rounded = abs(rounded)
    return format(rounded, "f")


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through a float.

    NUMERIC(precision, scale) on PostgreSQL; fixed-point text on SQLite.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = DEFAULT_PRECISION, scale: int = DEFAULT_SCALE):
        super().__init__(precision=precision, scale=scale)
        self.precision = precision
        self.scale = scale

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision + 2))
        return dialect.type_descriptor(Numeric(self.precision, self.scale, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return to_fixed_point(value, self.precision, self.scale)
        return to_decimal(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, Decimal):
            return value
        return to_decimal(str(value))


# ---------------------------------------------------------------------------
# SQL arithmetic on ExactDecimal columns
# ---------------------------------------------------------------------------


def _exact(value):
    if isinstance(value, ClauseElement):
        return value
    return literal(to_decimal(value), ExactDecimal())


class decimal_add(FunctionElement):
    """``a + b``"""

    type = ExactDecimal()
    name = "decimal_add"
    inherit_cache = True

    def __init__(self, left, right):
        super().__init__(_exact(left), _exact(right))


class decimal_sum(FunctionElement):
    """``SUM(x)``; NULL over no rows."""

    type = ExactDecimal()
    name = "decimal_sum"
    inherit_cache = True

    def __init__(self, expr):
        super().__init__(_exact(expr))


class decimal_cmp(FunctionElement):
    """-1, 0 or 1 as ``a`` is below, equal to or above ``b``."""

    type = Integer()
    name = "decimal_cmp"
    inherit_cache = True

    def __init__(self, left, right):
        super().__init__(_exact(left), _exact(right))


@compiles(decimal_add)
def _compile_add(element, compiler, **kw):
    left, right = element.clauses
    return f"({compiler.process(left, **kw)} + {compiler.process(right, **kw)})"


@compiles(decimal_add, "sqlite")
def _compile_add_sqlite(element, compiler, **kw):
    return f"exact_add({compiler.process(element.clauses, **kw)})"


@compiles(decimal_sum)
def _compile_sum(element, compiler, **kw):
    return f"sum({compiler.process(element.clauses, **kw)})"


@compiles(decimal_sum, "sqlite")
def _compile_sum_sqlite(element, compiler, **kw):
    return f"exact_sum({compiler.process(element.clauses, **kw)})"


@compiles(decimal_cmp)
def _compile_cmp(element, compiler, **kw):
    left, right = element.clauses
    return f"sign({compiler.process(left, **kw)} - {compiler.process(right, **kw)})"


@compiles(decimal_cmp, "sqlite")
def _compile_cmp_sqlite(element, compiler, **kw):
    return f"exact_cmp({compiler.process(element.clauses, **kw)})"


# ---------------------------------------------------------------------------
# SQLite implementations
# ---------------------------------------------------------------------------


def _exact_add(left, right):
    if left is None or right is None:
        return None
    return to_fixed_point(_ARITHMETIC.add(to_decimal(str(left)), to_decimal(str(right))))


def _exact_cmp(left, right):
    if left is None or right is None:
        return None
    return int(to_decimal(str(left)).compare(to_decimal(str(right))))


class _ExactSum:
    def __init__(self):
        self.total = None

    def step(self, value):
        if value is None:
            return
        number = to_decimal(str(value))
        self.total = number if self.total is None else _ARITHMETIC.add(self.total, number)

    def finalize(self):
        return None if self.total is None else to_fixed_point(self.total)


def register_sqlite_functions(dbapi_connection) -> None:
    """Install ``exact_add``, ``exact_cmp`` and ``exact_sum`` on a sqlite3 connection."""
    dbapi_connection.create_function("exact_add", 2, _exact_add, deterministic=True)
    dbapi_connection.create_function("exact_cmp", 2, _exact_cmp, deterministic=True)
    dbapi_connection.create_aggregate("exact_sum", 1, _ExactSum)
