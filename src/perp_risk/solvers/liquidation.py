"""Liquidation price of one position in a cross-margined account.

Only the subject position's mark price moves; every other position stays
at its snapshot mark price:

  equity(P)   = total_collateral + qty * (P - mark_price)
  required(P) = sum(other maintenance margin) + |qty| * P * MMR(P)

The liquidation price is the P where equity(P) == required(P).
total_collateral here is account equity at current marks, i.e. it already
includes the subject position's unrealized PnL.

With a fixed MMR the equation is linear and solved in closed form. With a
tiered MMR (MMR grows with notional) it is solved by bracketing the root
around the current mark price and bisecting.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from perp_risk.config import SolverSettings
from perp_risk.logging import get_logger
from perp_risk.numeric.bisection import bisect_root
from perp_risk.numeric.decimals import ONE, ZERO
from perp_risk.risk.position import maintenance_margin, mmr

logger = get_logger(__name__)

_TWO = Decimal("2")


@dataclass(frozen=True)
class PositionMargin:
    """Maintenance margin inputs for one position held at a fixed mark price."""

    symbol: str
    position_qty: Decimal
    mark_price: Decimal
    mmr: Decimal


@dataclass(frozen=True)
class MMRTier:
    """Parameters of a notional-dependent maintenance margin ratio."""

    base_mmr: Decimal
    base_imr: Decimal
    imr_factor: Decimal
    imr_factor_power: Decimal = ONE


@dataclass(frozen=True)
class LiquidationInputs:
    """Subject position plus the account it is cross-margined with.

    positions may include the subject itself; entries with the subject's
    symbol are ignored when summing the other positions' margin.
    """

    symbol: str
    mark_price: Decimal
    total_collateral: Decimal
    position_qty: Decimal
    positions: Sequence[PositionMargin]
    mmr: Decimal
    tier: MMRTier | None = None


class LiquidationSolver:
    """Finds the mark price at which account equity meets maintenance margin.

    Args:
        settings: Solver bounds (price tolerance, iteration and bracket caps).
    """

    def __init__(self, settings: SolverSettings) -> None:
        self._settings = settings

    def liq_price(self, inputs: LiquidationInputs) -> Decimal | None:
        """Calculate the liquidation price of the subject position.

        The two paths report an account that cannot be liquidated at any
        positive price differently. The closed form (tier is None) returns
        the root of the linear equation, which is then zero or negative.
        The tiered solve only searches prices >= 0, where notional ** power
        is defined, so it returns None for the same account. Callers that
        compare symbols should treat a price <= 0 and None alike as "no
        reachable liquidation price".

        Args:
            inputs: Subject position and account state.

        Returns:
            The liquidation price (possibly <= 0 on the closed-form path),
            or None when no liquidation price is defined: a flat position,
            a degenerate linear equation, or a tiered solve that finds no
            bracket or does not converge.
        """
        if inputs.position_qty == ZERO:
            return None

        other_mm = sum(
            (
                maintenance_margin(p.position_qty, p.mark_price, p.mmr)
                for p in inputs.positions
                if p.symbol != inputs.symbol
            ),
            ZERO,
        )

        if inputs.tier is None:
            price = self._solve_linear(inputs, other_mm)
        else:
            price = self._solve_tiered(inputs, other_mm, inputs.tier)

        if price is None:
            logger.info(
                "liquidation_price_undefined",
                symbol=inputs.symbol,
                position_qty=str(inputs.position_qty),
                tiered=inputs.tier is not None,
            )
        else:
            logger.debug(
                "liquidation_price_solved",
                symbol=inputs.symbol,
                position_qty=str(inputs.position_qty),
                price=str(price),
            )
        return price

    def _solve_linear(self, inputs: LiquidationInputs, other_mm: Decimal) -> Decimal | None:
        qty = inputs.position_qty
        abs_qty = abs(qty)
        denominator = abs_qty * inputs.mmr - qty
        if denominator == ZERO:
            return None
        numerator = inputs.total_collateral - other_mm - abs_qty * inputs.mark_price * inputs.mmr
        return inputs.mark_price + numerator / denominator

    def _solve_tiered(
        self,
        inputs: LiquidationInputs,
        other_mm: Decimal,
        tier: MMRTier,
    ) -> Decimal | None:
        qty = inputs.position_qty
        abs_qty = abs(qty)
        mark = inputs.mark_price

        def surplus(price: Decimal) -> Decimal:
            notional = abs_qty * price
            ratio = mmr(
                base_mmr=tier.base_mmr,
                base_imr=tier.base_imr,
                imr_factor=tier.imr_factor,
                position_notional=notional,
                imr_factor_power=tier.imr_factor_power,
            )
            equity = inputs.total_collateral + qty * (price - mark)
            return equity - other_mm - notional * ratio

        surplus_at_mark = surplus(mark)
        if surplus_at_mark == ZERO:
            return mark

        # A healthy short or an underwater long liquidates above the mark price.
        if (surplus_at_mark > ZERO) == (qty < ZERO):
            bracket = self._expand_upwards(surplus, mark, surplus_at_mark > ZERO)
            if bracket is None:
                return None
            lo, hi = bracket
        else:
            lo, hi = ZERO, mark

        return bisect_root(
            surplus,
            lo,
            hi,
            tolerance=self._settings.price_tolerance,
            max_iterations=self._settings.max_iterations,
        )

    def _expand_upwards(
        self,
        fn: Callable[[Decimal], Decimal],
        start: Decimal,
        start_positive: bool,
    ) -> tuple[Decimal, Decimal] | None:
        lo = start
        hi = start * _TWO if start > ZERO else ONE
        for _ in range(self._settings.max_bracket_expansions):
            value = fn(hi)
            if value == ZERO or (value > ZERO) != start_positive:
                return lo, hi
            lo, hi = hi, hi * _TWO
        return None
