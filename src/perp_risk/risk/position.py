"""Per-position risk metrics: PnL, notional, margin ratios and ROI.

All calculations use Decimal arithmetic; no float conversions anywhere.

Sign convention: position_qty is signed (long > 0, short < 0), so PnL
formulas need no side branching. Notional and margin amounts always use
|position_qty|.

Tiered margin:
  IMR = max(1 / max_leverage, base_imr, imr_factor * notional ** power)
  MMR = max(base_mmr, base_mmr / base_imr * imr_factor * notional ** power)
Larger notional pushes both ratios above their floors. MMR stays below IMR
as long as base_mmr <= base_imr, which the exchange's parameter set
guarantees and which is not re-checked here.
"""

from decimal import Decimal

from perp_risk.exceptions import InvalidInputError
from perp_risk.numeric.decimals import NAN, ONE, ZERO, decimal_pow, safe_div


def position_notional(qty: Decimal, mark_price: Decimal) -> Decimal:
    """Absolute position size valued at mark price."""
    return abs(qty) * mark_price


def unrealized_pnl(mark_price: Decimal, open_price: Decimal, qty: Decimal) -> Decimal:
    """Unrealized PnL: qty * (mark_price - open_price).

    Args:
        mark_price: Current mark price.
        open_price: Average open price.
        qty: Signed position quantity.

    Returns:
        Positive for profit, negative for loss, for both longs and shorts.
    """
    return qty * (mark_price - open_price)


def unsettlement_pnl(
    position_qty: Decimal,
    mark_price: Decimal,
    cost_position: Decimal,
    sum_unitary_funding: Decimal,
    last_sum_unitary_funding: Decimal,
) -> Decimal:
    """Funding PnL accrued since the position's last settlement point.

    Funding moves the cumulative sum_unitary_funding index; a position owes
    qty * (index now - index at last settlement). mark_price and
    cost_position are accepted for callers that value the position alongside
    the funding term but do not enter the funding term itself.

    Args:
        position_qty: Signed position quantity.
        mark_price: Current mark price (unused by the funding term).
        cost_position: Position cost basis (unused by the funding term).
        sum_unitary_funding: Current cumulative funding index.
        last_sum_unitary_funding: Index at the last settlement.

    Returns:
        Unsettled funding PnL. Positive = income.
    """
    return position_qty * (last_sum_unitary_funding - sum_unitary_funding)


def unrealized_pnl_roi(
    position_qty: Decimal,
    open_price: Decimal,
    imr: Decimal,
    unrealized_pnl: Decimal,
) -> Decimal:
    """Return on the initial margin committed at open.

    ROI = unrealized_pnl / (|qty| * open_price * imr)

    Returns:
        ROI as a fraction, or NaN when the position is flat or imr is zero.
    """
    denominator = abs(position_qty) * open_price * imr
    return safe_div(unrealized_pnl, denominator, NAN)


def unsettled_pnl_roi(
    position_qty: Decimal,
    open_price: Decimal,
    imr: Decimal,
    unsettled_pnl: Decimal,
) -> Decimal:
    """Unsettled PnL as a fraction of the initial margin committed at open. NaN when undefined."""
    denominator = abs(position_qty) * open_price * imr
    return safe_div(unsettled_pnl, denominator, NAN)


def imr(
    max_leverage: Decimal,
    base_imr: Decimal,
    imr_factor: Decimal,
    position_notional: Decimal,
    orders_notional: Decimal,
    imr_factor_power: Decimal = ONE,
) -> Decimal:
    """Effective initial margin ratio for one symbol.

    The result is not capped at 1: a ratio above 1 means the requested size
    needs more margin than its notional and is reported as such.

    Args:
        max_leverage: Leverage ceiling (account or symbol), must be positive.
        base_imr: Symbol floor for the initial margin ratio.
        imr_factor: Notional scaling factor.
        position_notional: Current position notional.
        orders_notional: Notional of resting orders.
        imr_factor_power: Exponent on notional (1 = linear).

    Returns:
        The largest of the leverage floor, base IMR and the tiered term.

    Raises:
        InvalidInputError: If max_leverage is not positive.
    """
    if max_leverage <= ZERO:
        raise InvalidInputError(f"max_leverage must be positive, got {max_leverage}")

    notional = abs(position_notional + orders_notional)
    tiered = imr_factor * decimal_pow(notional, imr_factor_power)
    return max(ONE / max_leverage, base_imr, tiered)


def mmr(
    base_mmr: Decimal,
    base_imr: Decimal,
    imr_factor: Decimal,
    position_notional: Decimal,
    imr_factor_power: Decimal = ONE,
) -> Decimal:
    """Maintenance margin ratio, tiered like IMR but anchored to base_mmr.

    Raises:
        InvalidInputError: If base_imr is not positive.
    """
    if base_imr <= ZERO:
        raise InvalidInputError(f"base_imr must be positive, got {base_imr}")

    tiered = (
        base_mmr / base_imr * imr_factor * decimal_pow(abs(position_notional), imr_factor_power)
    )
    return max(base_mmr, tiered)


def maintenance_margin(position_qty: Decimal, mark_price: Decimal, mmr: Decimal) -> Decimal:
    """Maintenance margin: |qty| * mark_price * MMR."""
    return abs(position_qty) * mark_price * mmr


def initial_margin(position_qty: Decimal, mark_price: Decimal, imr: Decimal) -> Decimal:
    """Initial margin: |qty| * mark_price * IMR."""
    return abs(position_qty) * mark_price * imr
