"""Collateral valuation: cash, discounted non-cash holdings and pending PnL.

Non-USDC holdings count at holding * mark_price * discount, where the
discount (0..1) is the haircut for price risk on that asset.

total_collateral and total_value share one formula. They stay separate
entry points because callers feed them different PnL figures: a single
pre-summed unsettled PnL versus the account-wide unsettled total.
"""

from collections.abc import Iterable
from decimal import Decimal

from perp_risk.exceptions import InvalidInputError
from perp_risk.models import CollateralAsset
from perp_risk.numeric.decimals import NAN, ONE, ZERO, safe_div


def _discounted_value(non_usdc_holding: Iterable[CollateralAsset]) -> Decimal:
    total = ZERO
    for asset in non_usdc_holding:
        if asset.discount < ZERO or asset.discount > ONE:
            raise InvalidInputError(f"discount must be within [0, 1], got {asset.discount}")
        total += asset.holding * asset.mark_price * asset.discount
    return total


def _collateral(
    usdc_holding: Decimal,
    non_usdc_holding: Iterable[CollateralAsset],
    pnl: Decimal,
) -> Decimal:
    return usdc_holding + pnl + _discounted_value(non_usdc_holding)


def total_collateral(
    usdc_holding: Decimal,
    non_usdc_holding: Iterable[CollateralAsset],
    unsettlement_pnl: Decimal,
) -> Decimal:
    """Total collateral: USDC + unsettled PnL + discounted non-USDC holdings.

    May be negative for an underwater account; never clamped.
    """
    return _collateral(usdc_holding, non_usdc_holding, unsettlement_pnl)


def total_value(
    total_unsettlement_pnl: Decimal,
    usdc_holding: Decimal,
    non_usdc_holding: Iterable[CollateralAsset],
) -> Decimal:
    """Total account value from the account-wide unsettled PnL total."""
    return _collateral(usdc_holding, non_usdc_holding, total_unsettlement_pnl)


def available_balance(usdc_holding: Decimal, unsettlement_pnl: Decimal) -> Decimal:
    """Unencumbered cash before margin in use is subtracted."""
    return usdc_holding + unsettlement_pnl


def total_unrealized_roi(total_unrealized_pnl: Decimal, total_value: Decimal) -> Decimal:
    """Account unrealized PnL as a fraction of total value. NaN for zero value."""
    return safe_div(total_unrealized_pnl, total_value, NAN)


def free_collateral(
    total_collateral: Decimal,
    total_initial_margin_with_orders: Decimal,
) -> Decimal:
    """Collateral left after reserving initial margin for positions and orders.

    A negative result means the account is under-margined; it is returned
    as-is so callers can treat it as a margin call signal.
    """
    return total_collateral - total_initial_margin_with_orders
