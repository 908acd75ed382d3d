"""Monotone bisection shared by the max-quantity and liquidation price solvers.

Both solvers reduce to "find the boundary of a monotone condition":
  - max quantity: largest q whose margin cost still fits the available collateral
  - liquidation price: the price where equity minus required margin changes sign

Every search is bounded by max_iterations. Running out of iterations is a
"no solution" outcome (None), never a best-effort guess.
"""

from collections.abc import Callable
from decimal import Decimal

from perp_risk.exceptions import InvalidInputError
from perp_risk.numeric.decimals import ZERO

_TWO = Decimal("2")


def bisect_max_feasible(
    predicate: Callable[[Decimal], bool],
    lo: Decimal,
    hi: Decimal,
    *,
    tolerance: Decimal,
    max_iterations: int,
) -> Decimal | None:
    """Find the largest x in [lo, hi] where a monotone predicate holds.

    The predicate must be true up to some boundary and false beyond it.
    The returned value always satisfies the predicate.

    Args:
        predicate: Monotone feasibility test (true, then false).
        lo: Lower bound of the search interval.
        hi: Upper bound of the search interval.
        tolerance: Stop once the bracketing interval is at most this wide.
        max_iterations: Hard cap on predicate evaluations in the loop.

    Returns:
        The feasible end of the final bracket, hi if hi itself is feasible,
        or None if lo is infeasible or the iteration cap is reached.
    """
    if tolerance <= ZERO:
        raise InvalidInputError(f"tolerance must be positive, got {tolerance}")
    if hi < lo:
        raise InvalidInputError(f"empty search interval [{lo}, {hi}]")

    if not predicate(lo):
        return None
    if predicate(hi):
        return hi

    for _ in range(max_iterations):
        if hi - lo <= tolerance:
            return lo
        mid = (lo + hi) / _TWO
        if predicate(mid):
            lo = mid
        else:
            hi = mid

    if hi - lo <= tolerance:
        return lo
    return None


def bisect_root(
    fn: Callable[[Decimal], Decimal],
    lo: Decimal,
    hi: Decimal,
    *,
    tolerance: Decimal,
    max_iterations: int,
) -> Decimal | None:
    """Find x in [lo, hi] where a monotone function crosses zero.

    Args:
        fn: Monotone function; fn(lo) and fn(hi) must not share a strict sign.
        lo: Lower bracket.
        hi: Upper bracket.
        tolerance: Width of the final bracket.
        max_iterations: Hard cap on iterations.

    Returns:
        Root estimate within tolerance, or None without a sign change or
        when the iteration cap is reached.
    """
    f_lo = fn(lo)
    if f_lo == ZERO:
        return lo
    f_hi = fn(hi)
    if f_hi == ZERO:
        return hi
    if (f_lo > ZERO) == (f_hi > ZERO):
        return None

    lo_positive = f_lo > ZERO
    return bisect_max_feasible(
        lambda x: (fn(x) > ZERO) == lo_positive,
        lo,
        hi,
        tolerance=tolerance,
        max_iterations=max_iterations,
    )
