"""Shared test fixtures for the margin and risk engine."""

from decimal import Decimal

import pytest

from perp_risk.config import EngineSettings, SolverSettings
from perp_risk.models import (
    AccountSnapshot,
    CollateralAsset,
    Holding,
    Order,
    OrderSide,
    Position,
    SymbolRiskParams,
)


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Engine settings with defaults (34-digit precision, no ratio rounding)."""
    return EngineSettings()


@pytest.fixture
def solver_settings() -> SolverSettings:
    """Solver settings with defaults (4 quantity decimal places)."""
    return SolverSettings()


@pytest.fixture
def eth_params() -> SymbolRiskParams:
    """ETH parameters: 10% base IMR, 5% base MMR, 10x leverage."""
    return SymbolRiskParams(
        symbol="PERP_ETH_USDC",
        base_imr=Decimal("0.1"),
        base_mmr=Decimal("0.05"),
        imr_factor=Decimal("0.00001"),
        max_leverage=Decimal("10"),
        base_max_qty=Decimal("100"),
        taker_fee_rate=Decimal("0.0006"),
    )


@pytest.fixture
def btc_params() -> SymbolRiskParams:
    """BTC parameters: 5% base IMR, 2.5% base MMR, 20x leverage."""
    return SymbolRiskParams(
        symbol="PERP_BTC_USDC",
        base_imr=Decimal("0.05"),
        base_mmr=Decimal("0.025"),
        imr_factor=Decimal("0.000001"),
        max_leverage=Decimal("20"),
        base_max_qty=Decimal("10"),
        taker_fee_rate=Decimal("0.0006"),
    )


@pytest.fixture
def account_snapshot(
    eth_params: SymbolRiskParams,
    btc_params: SymbolRiskParams,
) -> AccountSnapshot:
    """Two-position account: long 1 ETH in profit, short 0.1 BTC in profit.

    - USDC 1000 + 1 ETH collateral at 2000 with a 0.5 discount
    - ETH: long 1 @ 1800, mark 2000, unsettled funding -2
    - BTC: short 0.1 @ 31000, mark 30000, no unsettled funding
    - One resting ETH buy order for 0.5
    """
    return AccountSnapshot(
        holding=Holding(
            usdc=Decimal("1000"),
            non_usdc=(
                CollateralAsset(
                    holding=Decimal("1"),
                    mark_price=Decimal("2000"),
                    discount=Decimal("0.5"),
                ),
            ),
        ),
        positions=(
            Position(
                symbol="PERP_ETH_USDC",
                position_qty=Decimal("1"),
                average_open_price=Decimal("1800"),
                mark_price=Decimal("1990"),
                cost_position=Decimal("1800"),
                last_sum_unitary_funding=Decimal("10"),
                sum_unitary_funding=Decimal("12"),
            ),
            Position(
                symbol="PERP_BTC_USDC",
                position_qty=Decimal("-0.1"),
                average_open_price=Decimal("31000"),
                mark_price=Decimal("30000"),
                cost_position=Decimal("-3100"),
                last_sum_unitary_funding=Decimal("5"),
                sum_unitary_funding=Decimal("5"),
            ),
        ),
        orders=(
            Order(
                symbol="PERP_ETH_USDC",
                side=OrderSide.BUY,
                quantity=Decimal("0.5"),
                price=Decimal("1900"),
            ),
        ),
        mark_prices={
            "PERP_ETH_USDC": Decimal("2000"),
            "PERP_BTC_USDC": Decimal("30000"),
        },
        symbol_info={
            "PERP_ETH_USDC": eth_params,
            "PERP_BTC_USDC": btc_params,
        },
        max_leverage=Decimal("10"),
    )
