"""Decimal helpers and the monotone bisection used by the solvers."""

from perp_risk.numeric.bisection import bisect_max_feasible, bisect_root
from perp_risk.numeric.decimals import (
    INFINITY,
    NAN,
    decimal_pow,
    floor_to_dp,
    round_half_up,
    safe_div,
    to_decimal,
)

__all__ = [
    "INFINITY",
    "NAN",
    "bisect_max_feasible",
    "bisect_root",
    "decimal_pow",
    "floor_to_dp",
    "round_half_up",
    "safe_div",
    "to_decimal",
]
