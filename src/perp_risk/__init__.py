"""Cross-margin risk engine for perpetual futures accounts.

Margin requirements, collateral valuation, leverage, PnL, maximum order
quantity and liquidation price, all computed in Decimal from account
snapshots.
"""

from perp_risk.config import AppSettings, EngineSettings, SolverSettings
from perp_risk.models import (
    AccountSnapshot,
    CollateralAsset,
    Holding,
    Order,
    OrderSide,
    Position,
    PositionSide,
    SymbolRiskParams,
)
from perp_risk.report import AccountRiskEngine, AccountRiskReport, PositionRisk

__all__ = [
    "AccountRiskEngine",
    "AccountRiskReport",
    "AccountSnapshot",
    "AppSettings",
    "CollateralAsset",
    "EngineSettings",
    "Holding",
    "Order",
    "OrderSide",
    "Position",
    "PositionRisk",
    "PositionSide",
    "SolverSettings",
    "SymbolRiskParams",
]
