"""Build an AccountSnapshot from a raw JSON-style document.

Field names follow the exchange's account payloads (position_qty,
cost_position, USDCHolding, IMR_Factor, ...). Numbers are converted to
Decimal through str(), so JSON floats keep their printed value.

Expected document shape:
    {
      "USDCHolding": 1000,
      "nonUSDCHolding": [{"holding": 1, "markPrice": 100, "discount": 0.9}],
      "positions": [{"symbol": "PERP_ETH_USDC", "position_qty": 1, ...}],
      "orders": [{"symbol": "PERP_ETH_USDC", "side": "BUY", "quantity": 1, ...}],
      "markPrices": {"PERP_ETH_USDC": 2000},
      "symbolInfo": {"PERP_ETH_USDC": {"base_imr": 0.1, "base_mmr": 0.05, ...}},
      "maxLeverage": 10
    }
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from perp_risk.exceptions import SnapshotFormatError
from perp_risk.models import (
    AccountSnapshot,
    CollateralAsset,
    Holding,
    Order,
    OrderSide,
    Position,
    SymbolRiskParams,
)
from perp_risk.numeric.decimals import to_decimal

_MISSING = object()


def _value(raw: Mapping[str, Any], *names: str, default: Any = _MISSING) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    if default is _MISSING:
        raise SnapshotFormatError(f"missing field {names[0]!r}")
    return default


def _number(value: Any, name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise SnapshotFormatError(f"field {name!r} is not a number: {value!r}")
    try:
        return to_decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise SnapshotFormatError(f"field {name!r} is not a number: {value!r}") from exc


def _decimal(raw: Mapping[str, Any], *names: str, default: Any = _MISSING) -> Any:
    value = _value(raw, *names, default=default)
    if value is None:
        return value
    return _number(value, names[0])


def _decimal_map(data: Mapping[str, Any], key: str) -> dict[str, Decimal]:
    """Per-symbol numbers such as markPrices; every value must be numeric."""
    return {
        symbol: _number(value, f"{key}.{symbol}") for symbol, value in data.get(key, {}).items()
    }


def _int(raw: Mapping[str, Any], name: str, default: int) -> int:
    value = _value(raw, name, default=default)
    if isinstance(value, bool):
        raise SnapshotFormatError(f"field {name!r} is not an integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SnapshotFormatError(f"field {name!r} is not an integer: {value!r}") from exc


def _bool(raw: Mapping[str, Any], name: str, default: bool) -> bool:
    value = _value(raw, name, default=default)
    if not isinstance(value, bool):
        raise SnapshotFormatError(f"field {name!r} is not a boolean: {value!r}")
    return value


def parse_position(raw: Mapping[str, Any]) -> Position:
    return Position(
        symbol=_value(raw, "symbol"),
        position_qty=_decimal(raw, "position_qty"),
        average_open_price=_decimal(raw, "average_open_price"),
        mark_price=_decimal(raw, "mark_price"),
        cost_position=_decimal(raw, "cost_position", default=Decimal("0")),
        last_sum_unitary_funding=_decimal(raw, "last_sum_unitary_funding", default=Decimal("0")),
        sum_unitary_funding=_decimal(raw, "sum_unitary_funding", default=None),
        mmr=_decimal(raw, "mmr", default=Decimal("0")),
        imr=_decimal(raw, "imr", default=Decimal("0")),
        pending_long_qty=_decimal(raw, "pending_long_qty", default=Decimal("0")),
        pending_short_qty=_decimal(raw, "pending_short_qty", default=Decimal("0")),
        settle_price=_decimal(raw, "settle_price", default=Decimal("0")),
        timestamp=_int(raw, "timestamp", default=0),
        unrealized_pnl=_decimal(raw, "unrealized_pnl", default=Decimal("0")),
        unsettled_pnl=_decimal(raw, "unsettled_pnl", default=Decimal("0")),
        est_liq_price=_decimal(raw, "est_liq_price", default=None),
    )


def parse_order(raw: Mapping[str, Any]) -> Order:
    side = str(_value(raw, "side")).upper()
    try:
        order_side = OrderSide(side)
    except ValueError as exc:
        raise SnapshotFormatError(f"unknown order side: {side!r}") from exc
    return Order(
        symbol=_value(raw, "symbol"),
        side=order_side,
        quantity=_decimal(raw, "quantity"),
        price=_decimal(raw, "price", default=None),
        executed=_decimal(raw, "executed", default=Decimal("0")),
        reduce_only=_bool(raw, "reduce_only", default=False),
    )


def parse_symbol_params(
    symbol: str,
    raw: Mapping[str, Any],
    imr_factor: Decimal | None = None,
    default_imr_factor_power: Decimal = Decimal("1"),
) -> SymbolRiskParams:
    if imr_factor is None:
        imr_factor = Decimal("0")
    return SymbolRiskParams(
        symbol=symbol,
        base_imr=_decimal(raw, "base_imr", "baseIMR"),
        base_mmr=_decimal(raw, "base_mmr", "baseMMR"),
        imr_factor=_decimal(raw, "IMR_Factor", "imr_factor", default=imr_factor),
        max_leverage=_decimal(raw, "max_leverage", "maxLeverage"),
        base_max_qty=_decimal(raw, "base_max_qty", "baseMaxQty"),
        taker_fee_rate=_decimal(raw, "taker_fee_rate", "takerFeeRate", default=Decimal("0")),
        imr_factor_power=_decimal(
            raw, "IMR_factor_power", "imr_factor_power", default=default_imr_factor_power
        ),
    )


def load_snapshot(
    data: Mapping[str, Any],
    default_imr_factor_power: Decimal = Decimal("1"),
) -> AccountSnapshot:
    """Convert a raw snapshot document into an AccountSnapshot.

    Args:
        data: Decoded snapshot document.
        default_imr_factor_power: IMR exponent for symbols that do not set one.

    Raises:
        SnapshotFormatError: If a required field is missing or a field has the
            wrong type (non-numeric number, non-integer timestamp, non-boolean flag).
    """
    if not isinstance(data, Mapping):
        raise SnapshotFormatError(f"snapshot must be an object, got {type(data).__name__}")
    imr_factors = _decimal_map(data, "IMR_Factors")

    symbol_info = {
        symbol: parse_symbol_params(
            symbol, raw, imr_factors.get(symbol), default_imr_factor_power
        )
        for symbol, raw in data.get("symbolInfo", {}).items()
    }

    return AccountSnapshot(
        holding=Holding(
            usdc=_decimal(data, "USDCHolding"),
            non_usdc=tuple(
                CollateralAsset(
                    holding=_decimal(raw, "holding"),
                    mark_price=_decimal(raw, "markPrice", "mark_price"),
                    discount=_decimal(raw, "discount"),
                )
                for raw in data.get("nonUSDCHolding", [])
            ),
        ),
        positions=tuple(parse_position(raw) for raw in data.get("positions", [])),
        orders=tuple(parse_order(raw) for raw in data.get("orders", [])),
        mark_prices=_decimal_map(data, "markPrices"),
        symbol_info=symbol_info,
        max_leverage=_decimal(data, "maxLeverage", default=Decimal("10")),
    )
