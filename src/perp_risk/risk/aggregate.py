"""Account-wide totals over a sequence of positions.

Pure Decimal aggregation: every function accepts a sequence of Position
records and returns Decimal("0") for an empty sequence.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal

from perp_risk.models import Position
from perp_risk.numeric.decimals import INFINITY, ONE, ZERO, round_half_up, safe_div
from perp_risk.risk.position import position_notional, unrealized_pnl, unsettlement_pnl


def total_notional(positions: Sequence[Position]) -> Decimal:
    """Sum of |position_qty| * mark_price using each position's own mark price."""
    return sum(
        (position_notional(p.position_qty, p.mark_price) for p in positions),
        ZERO,
    )


def total_unrealized_pnl(positions: Sequence[Position]) -> Decimal:
    """Sum of unrealized PnL recomputed from mark price, open price and quantity."""
    return sum(
        (unrealized_pnl(p.mark_price, p.average_open_price, p.position_qty) for p in positions),
        ZERO,
    )


def total_unsettlement_pnl(positions: Sequence[Position]) -> Decimal:
    """Sum of unsettled funding PnL since each position's last settlement."""
    return sum(
        (
            unsettlement_pnl(
                position_qty=p.position_qty,
                mark_price=p.mark_price,
                cost_position=p.cost_position,
                sum_unitary_funding=p.current_sum_unitary_funding,
                last_sum_unitary_funding=p.last_sum_unitary_funding,
            )
            for p in positions
        ),
        ZERO,
    )


def total_margin_ratio(
    total_collateral: Decimal,
    positions: Sequence[Position],
    mark_prices: Mapping[str, Decimal],
    dp: int | None = None,
) -> Decimal:
    """Collateral per unit of exposure: total_collateral / total notional.

    Notional is valued at mark_prices[symbol]; a symbol missing from the map
    falls back to the position's own mark price.

    Args:
        total_collateral: Account collateral.
        positions: Open positions.
        mark_prices: Current mark price per symbol.
        dp: Decimal places for ROUND_HALF_UP rounding, or None for full precision.

    Returns:
        The margin ratio, or Infinity when there is no exposure.
    """
    notional = sum(
        (
            position_notional(p.position_qty, mark_prices.get(p.symbol, p.mark_price))
            for p in positions
        ),
        ZERO,
    )
    ratio = safe_div(total_collateral, notional, INFINITY)
    if dp is not None:
        ratio = round_half_up(ratio, dp)
    return ratio


def current_leverage(total_margin_ratio: Decimal) -> Decimal:
    """Account leverage, the reciprocal of the margin ratio.

    Returns:
        1 / ratio; Infinity for a zero ratio, 0 for an infinite ratio.
    """
    return safe_div(ONE, total_margin_ratio, INFINITY)
