"""Maximum additional order quantity for one side of one symbol.

Sizing condition for an additional quantity q on the requested side:

  exposure(q) = max(e0 + q, 0)          e0 = directional exposure incl. same-side orders
  notional(q) = exposure(q) * mark_price
  cost(q)     = notional(q) * IMR(notional(q)) + q * mark_price * taker_fee_rate
  cost(q) <= total_collateral - other_ims

Quantity that only reduces an opposite position adds no margin, just fees,
so cost(q) is non-decreasing in q and a monotone bisection finds the
boundary. The result is floored to dp decimal places and clamped to
[0, base_max_qty].
"""

from dataclasses import dataclass
from decimal import Decimal, getcontext

from perp_risk.config import SolverSettings
from perp_risk.exceptions import InvalidInputError
from perp_risk.logging import get_logger
from perp_risk.models import OrderSide
from perp_risk.numeric.bisection import bisect_max_feasible
from perp_risk.numeric.decimals import ONE, ZERO, decimal_context, floor_to_dp, step_for_dp
from perp_risk.risk.position import imr

logger = get_logger(__name__)

_GUARD_DIGITS = 10


@dataclass(frozen=True)
class MaxQtyInputs:
    """Account and symbol state needed to size one order."""

    symbol: str
    base_max_qty: Decimal
    total_collateral: Decimal
    max_leverage: Decimal
    base_imr: Decimal
    other_ims: Decimal  # initial margin used by all other symbols
    mark_price: Decimal
    position_qty: Decimal
    buy_orders_qty: Decimal
    sell_orders_qty: Decimal
    imr_factor: Decimal
    taker_fee_rate: Decimal
    imr_factor_power: Decimal = ONE


def _coerce_side(side: OrderSide | str) -> OrderSide:
    try:
        return OrderSide(side.upper() if isinstance(side, str) else side)
    except ValueError:
        raise InvalidInputError(f"unknown order side: {side!r}") from None


class QuantitySolver:
    """Solves for the largest order quantity that still fits available collateral.

    Args:
        settings: Solver bounds (iteration cap, default quantity precision).
    """

    def __init__(self, settings: SolverSettings) -> None:
        self._settings = settings

    def max_qty(
        self,
        side: OrderSide | str,
        inputs: MaxQtyInputs,
        dp: int | None = None,
    ) -> Decimal | None:
        """Calculate the maximum additional quantity for side.

        Args:
            side: BUY or SELL (enum or its string value).
            inputs: Account and symbol state.
            dp: Quantity decimal places; defaults to settings.default_qty_dp.

        Returns:
            Quantity in [0, base_max_qty], floored to dp places. 0 when the
            account has no collateral left for this symbol or its existing
            exposure already uses more than is available. None when the
            search hits settings.max_iterations before narrowing to one
            dp step.

        Raises:
            InvalidInputError: For an unknown side or non-positive mark price.
        """
        order_side = _coerce_side(side)
        if inputs.mark_price <= ZERO:
            raise InvalidInputError(f"mark_price must be positive, got {inputs.mark_price}")
        if dp is None:
            dp = self._settings.default_qty_dp

        available = inputs.total_collateral - inputs.other_ims
        if available <= ZERO or inputs.base_max_qty <= ZERO:
            logger.debug(
                "max_qty_no_collateral",
                symbol=inputs.symbol,
                side=order_side.value,
                available=str(available),
            )
            return ZERO

        if order_side == OrderSide.BUY:
            base_exposure = inputs.position_qty + inputs.buy_orders_qty
        else:
            base_exposure = -(inputs.position_qty - inputs.sell_orders_qty)

        def fits(qty: Decimal) -> bool:
            exposure = max(base_exposure + qty, ZERO)
            notional = exposure * inputs.mark_price
            ratio = imr(
                max_leverage=inputs.max_leverage,
                base_imr=inputs.base_imr,
                imr_factor=inputs.imr_factor,
                position_notional=notional,
                orders_notional=ZERO,
                imr_factor_power=inputs.imr_factor_power,
            )
            fee = qty * inputs.mark_price * inputs.taker_fee_rate
            return notional * ratio + fee <= available

        # Midpoints must stay distinct down to one dp step of base_max_qty.
        precision = max(
            getcontext().prec,
            inputs.base_max_qty.adjusted() + 1 + dp + _GUARD_DIGITS,
        )
        with decimal_context(precision):
            if not fits(ZERO):
                logger.debug(
                    "max_qty_over_exposed",
                    symbol=inputs.symbol,
                    side=order_side.value,
                    available=str(available),
                )
                return ZERO

            step = step_for_dp(dp)
            boundary = bisect_max_feasible(
                fits,
                ZERO,
                inputs.base_max_qty,
                tolerance=step,
                max_iterations=self._settings.max_iterations,
            )
            if boundary is None:
                logger.info(
                    "max_qty_unsolved",
                    symbol=inputs.symbol,
                    side=order_side.value,
                    dp=dp,
                    max_iterations=self._settings.max_iterations,
                )
                return None

            # The true boundary lies within one step above the bisection result,
            # so at most one more grid step can still fit.
            qty = floor_to_dp(boundary, dp)
            if qty + step <= inputs.base_max_qty and fits(qty + step):
                qty += step
            qty = min(max(qty, ZERO), inputs.base_max_qty)

        logger.debug(
            "max_qty_solved",
            symbol=inputs.symbol,
            side=order_side.value,
            available=str(available),
            qty=str(qty),
        )
        return qty
