"""Shared data models for the margin and risk engine.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or ratios.
Every record is frozen: a snapshot is assembled once and each calculation
returns new values instead of mutating it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "BUY"
    SELL = "SELL"


class PositionSide(str, Enum):
    """Position direction, derived from the sign of position_qty."""

    LONG = "long"
    SHORT = "short"
    FLAT = "flat"


@dataclass(frozen=True)
class SymbolRiskParams:
    """Per-symbol risk parameters supplied with each snapshot."""

    symbol: str
    base_imr: Decimal
    base_mmr: Decimal
    imr_factor: Decimal
    max_leverage: Decimal
    base_max_qty: Decimal
    taker_fee_rate: Decimal = Decimal("0")
    imr_factor_power: Decimal = Decimal("1")


@dataclass(frozen=True)
class Position:
    """A perpetual position as reported by the account snapshot.

    position_qty is signed: positive = long, negative = short.
    sum_unitary_funding is the current cumulative funding index; when the
    snapshot does not carry it, no funding has accrued since the last
    settlement.
    """

    symbol: str
    position_qty: Decimal
    average_open_price: Decimal
    mark_price: Decimal
    cost_position: Decimal = Decimal("0")
    last_sum_unitary_funding: Decimal = Decimal("0")
    sum_unitary_funding: Decimal | None = None
    mmr: Decimal = Decimal("0")
    imr: Decimal = Decimal("0")
    pending_long_qty: Decimal = Decimal("0")
    pending_short_qty: Decimal = Decimal("0")
    settle_price: Decimal = Decimal("0")
    timestamp: int = 0  # Unix milliseconds
    unrealized_pnl: Decimal = Decimal("0")  # as reported, not recomputed
    unsettled_pnl: Decimal = Decimal("0")  # as reported, not recomputed
    est_liq_price: Decimal | None = None

    @property
    def side(self) -> PositionSide:
        if self.position_qty > 0:
            return PositionSide.LONG
        if self.position_qty < 0:
            return PositionSide.SHORT
        return PositionSide.FLAT

    @property
    def current_sum_unitary_funding(self) -> Decimal:
        if self.sum_unitary_funding is None:
            return self.last_sum_unitary_funding
        return self.sum_unitary_funding


@dataclass(frozen=True)
class Order:
    """A resting order. Only its open quantity matters for margin."""

    symbol: str
    side: OrderSide
    quantity: Decimal
    price: Decimal | None = None
    executed: Decimal = Decimal("0")
    reduce_only: bool = False

    @property
    def open_qty(self) -> Decimal:
        return self.quantity - self.executed


@dataclass(frozen=True)
class CollateralAsset:
    """A non-USDC collateral holding valued at mark price with a haircut discount."""

    holding: Decimal
    mark_price: Decimal
    discount: Decimal


@dataclass(frozen=True)
class Holding:
    """Account balances: USDC cash plus non-USDC collateral assets."""

    usdc: Decimal
    non_usdc: tuple[CollateralAsset, ...] = ()


@dataclass(frozen=True)
class AccountSnapshot:
    """Everything one calculation needs. Exists only for the duration of a call."""

    holding: Holding
    positions: tuple[Position, ...] = ()
    orders: tuple[Order, ...] = ()
    mark_prices: Mapping[str, Decimal] = field(default_factory=dict)
    symbol_info: Mapping[str, SymbolRiskParams] = field(default_factory=dict)
    max_leverage: Decimal = Decimal("10")

    def mark_price_for(self, symbol: str) -> Decimal | None:
        """Mark price from the snapshot map, falling back to the position record."""
        price = self.mark_prices.get(symbol)
        if price is not None:
            return price
        for position in self.positions:
            if position.symbol == symbol:
                return position.mark_price
        return None

    def position_for(self, symbol: str) -> Position | None:
        for position in self.positions:
            if position.symbol == symbol:
                return position
        return None

    @property
    def imr_factors(self) -> dict[str, Decimal]:
        return {symbol: params.imr_factor for symbol, params in self.symbol_info.items()}
