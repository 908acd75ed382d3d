"""Nonlinear risk boundary solvers: max order quantity and liquidation price."""

from perp_risk.solvers.liquidation import (
    LiquidationInputs,
    LiquidationSolver,
    MMRTier,
    PositionMargin,
)
from perp_risk.solvers.max_qty import MaxQtyInputs, QuantitySolver

__all__ = [
    "LiquidationInputs",
    "LiquidationSolver",
    "MMRTier",
    "MaxQtyInputs",
    "PositionMargin",
    "QuantitySolver",
]
