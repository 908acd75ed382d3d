"""Initial margin in use across positions and resting orders.

For each symbol:
  position_notional = |position_qty| * mark_price
  orders_notional   = (open buy qty + open sell qty) * mark_price
  initial margin    = IMR(position_notional, orders_notional) * (position_notional + orders_notional)

Reduce-only orders cannot add exposure and are left out of the open order
quantity, as is any executed part of an order.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal

from perp_risk.exceptions import MissingMarkPriceError
from perp_risk.logging import get_logger
from perp_risk.models import Order, OrderSide, Position, SymbolRiskParams
from perp_risk.numeric.decimals import ONE, ZERO
from perp_risk.risk.position import imr

logger = get_logger(__name__)


def open_order_quantities(orders: Sequence[Order], symbol: str) -> tuple[Decimal, Decimal]:
    """Open (unexecuted, non reduce-only) buy and sell quantity for one symbol.

    Returns:
        Tuple of (buy_qty, sell_qty).
    """
    buy_qty = ZERO
    sell_qty = ZERO
    for order in orders:
        if order.symbol != symbol or order.reduce_only:
            continue
        if order.side == OrderSide.BUY:
            buy_qty += order.open_qty
        else:
            sell_qty += order.open_qty
    return buy_qty, sell_qty


def _symbols_in_use(positions: Sequence[Position], orders: Sequence[Order]) -> list[str]:
    seen: dict[str, None] = {}
    for position in positions:
        seen.setdefault(position.symbol, None)
    for order in orders:
        seen.setdefault(order.symbol, None)
    return list(seen)


def _resolve_mark_price(
    symbol: str,
    mark_prices: Mapping[str, Decimal],
    position: Position | None,
) -> Decimal:
    price = mark_prices.get(symbol)
    if price is not None:
        return price
    if position is not None:
        return position.mark_price
    raise MissingMarkPriceError(f"no mark price for {symbol}")


def symbol_initial_margin(
    position_qty: Decimal,
    buy_orders_qty: Decimal,
    sell_orders_qty: Decimal,
    mark_price: Decimal,
    imr_factor: Decimal,
    max_leverage: Decimal,
    base_imr: Decimal = ZERO,
    imr_factor_power: Decimal = ONE,
) -> Decimal:
    """Initial margin for one symbol's position plus its resting orders.

    Args:
        position_qty: Signed position quantity.
        buy_orders_qty: Open buy order quantity.
        sell_orders_qty: Open sell order quantity.
        mark_price: Current mark price.
        imr_factor: Symbol IMR scaling factor.
        max_leverage: Effective leverage ceiling for the symbol.
        base_imr: Symbol IMR floor.
        imr_factor_power: Exponent on notional.

    Returns:
        IMR * (position_notional + orders_notional).
    """
    position_notional = abs(position_qty) * mark_price
    orders_notional = (buy_orders_qty + sell_orders_qty) * mark_price
    ratio = imr(
        max_leverage=max_leverage,
        base_imr=base_imr,
        imr_factor=imr_factor,
        position_notional=position_notional,
        orders_notional=orders_notional,
        imr_factor_power=imr_factor_power,
    )
    return ratio * (position_notional + orders_notional)


def _initial_margin_by_symbol(
    positions: Sequence[Position],
    orders: Sequence[Order],
    mark_prices: Mapping[str, Decimal],
    imr_factors: Mapping[str, Decimal],
    max_leverage: Decimal,
    symbol_info: Mapping[str, SymbolRiskParams] | None,
) -> dict[str, Decimal]:
    positions_by_symbol = {p.symbol: p for p in positions}
    margins: dict[str, Decimal] = {}

    for symbol in _symbols_in_use(positions, orders):
        position = positions_by_symbol.get(symbol)
        mark_price = _resolve_mark_price(symbol, mark_prices, position)
        buy_qty, sell_qty = open_order_quantities(orders, symbol)

        params = symbol_info.get(symbol) if symbol_info else None
        if params is not None:
            base_imr = params.base_imr
            power = params.imr_factor_power
            leverage = min(max_leverage, params.max_leverage)
        else:
            base_imr = ZERO
            power = ONE
            leverage = max_leverage

        margins[symbol] = symbol_initial_margin(
            position_qty=position.position_qty if position is not None else ZERO,
            buy_orders_qty=buy_qty,
            sell_orders_qty=sell_qty,
            mark_price=mark_price,
            imr_factor=imr_factors.get(symbol, ZERO),
            max_leverage=leverage,
            base_imr=base_imr,
            imr_factor_power=power,
        )

    return margins


def total_initial_margin_with_orders(
    positions: Sequence[Position],
    orders: Sequence[Order],
    mark_prices: Mapping[str, Decimal],
    imr_factors: Mapping[str, Decimal],
    max_leverage: Decimal,
    symbol_info: Mapping[str, SymbolRiskParams] | None = None,
) -> Decimal:
    """Total initial margin reserved by positions and resting orders.

    Args:
        positions: Open positions.
        orders: Resting orders.
        mark_prices: Mark price per symbol; positions fall back to their own.
        imr_factors: IMR factor per symbol (missing symbol -> 0).
        max_leverage: Account leverage ceiling.
        symbol_info: Optional per-symbol overrides for base IMR, power and
            leverage. Without it base IMR is 0 and power is 1.

    Returns:
        Sum of per-symbol initial margin.

    Raises:
        MissingMarkPriceError: If an order-only symbol has no mark price.
    """
    margins = _initial_margin_by_symbol(
        positions, orders, mark_prices, imr_factors, max_leverage, symbol_info
    )
    total = sum(margins.values(), ZERO)

    logger.debug(
        "initial_margin_with_orders",
        symbols=len(margins),
        total=str(total),
    )
    return total


def other_initial_margins(
    positions: Sequence[Position],
    orders: Sequence[Order],
    mark_prices: Mapping[str, Decimal],
    imr_factors: Mapping[str, Decimal],
    max_leverage: Decimal,
    exclude_symbol: str,
    symbol_info: Mapping[str, SymbolRiskParams] | None = None,
) -> Decimal:
    """Initial margin used by every symbol except exclude_symbol.

    This is the "other IMs" figure the max-quantity solver subtracts from
    collateral before sizing an order on exclude_symbol.
    """
    margins = _initial_margin_by_symbol(
        positions, orders, mark_prices, imr_factors, max_leverage, symbol_info
    )
    return sum(
        (margin for symbol, margin in margins.items() if symbol != exclude_symbol),
        ZERO,
    )
