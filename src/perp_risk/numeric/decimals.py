"""Decimal arithmetic helpers shared by every calculation.

All calculations use Decimal arithmetic exclusively. Floats are converted
through str() on entry so 0.1 stays 0.1.

Undefined results are expressed with Decimal's own special values instead
of exceptions, so one degenerate symbol never halts a batch:
  - NAN: 0/0 style results (ROI of an empty position)
  - INFINITY: x/0 style results (margin ratio with no exposure)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext

ZERO = Decimal("0")
ONE = Decimal("1")
INFINITY = Decimal("Infinity")
NAN = Decimal("NaN")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a number to Decimal without binary-float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def decimal_pow(base: Decimal, exponent: Decimal) -> Decimal:
    """Raise base to exponent with the conventions the margin formulas need.

    x ** 0 is 1 and 0 ** p is 0 for p > 0; Decimal itself rejects 0 ** 0.
    Non-integer exponents are correctly rounded to the context precision.
    """
    if exponent == ZERO:
        return ONE
    if base == ZERO:
        return ZERO
    return base**exponent


def safe_div(numerator: Decimal, denominator: Decimal, sentinel: Decimal = NAN) -> Decimal:
    """Divide, returning sentinel instead of raising when denominator is zero."""
    if denominator == ZERO:
        return sentinel
    return numerator / denominator


def step_for_dp(dp: int) -> Decimal:
    """Smallest increment with dp decimal places (dp=2 -> 0.01)."""
    return Decimal(1).scaleb(-dp)


def round_half_up(value: Decimal, dp: int) -> Decimal:
    """Round to dp places, halves away from zero. Special values pass through."""
    if not value.is_finite():
        return value
    return value.quantize(step_for_dp(dp), rounding=ROUND_HALF_UP)


def floor_to_dp(value: Decimal, dp: int) -> Decimal:
    """Truncate toward zero at dp places (never rounds a quantity up)."""
    if not value.is_finite():
        return value
    return value.quantize(step_for_dp(dp), rounding=ROUND_DOWN)


@contextmanager
def decimal_context(precision: int) -> Iterator[None]:
    """Run a block of calculations with the given significant-digit precision."""
    with localcontext() as ctx:
        ctx.prec = precision
        yield
