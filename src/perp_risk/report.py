"""Account risk report: runs every calculation over one AccountSnapshot.

Data flow:
1. Reprice positions with the snapshot's mark prices
2. Per-position metrics (PnL, tiered IMR/MMR, maintenance margin, ROI)
3. Account totals (notional, PnL, collateral, value, available balance)
4. Margin usage (initial margin with orders, free collateral, margin ratio, leverage)
5. Risk boundaries (liquidation price per position, max order quantity on demand)

Symbols without SymbolRiskParams keep the IMR/MMR reported in the snapshot.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from perp_risk.config import EngineSettings, SolverSettings
from perp_risk.exceptions import InvalidInputError, MissingMarkPriceError
from perp_risk.logging import get_logger
from perp_risk.models import AccountSnapshot, OrderSide, Position, PositionSide, SymbolRiskParams
from perp_risk.numeric.decimals import ZERO, decimal_context
from perp_risk.risk import aggregate, collateral, margin, position
from perp_risk.solvers.liquidation import (
    LiquidationInputs,
    LiquidationSolver,
    MMRTier,
    PositionMargin,
)
from perp_risk.solvers.max_qty import MaxQtyInputs, QuantitySolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class PositionRisk:
    """Risk metrics for a single position."""

    symbol: str
    side: PositionSide
    position_qty: Decimal
    mark_price: Decimal
    notional: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_roi: Decimal  # NaN for a flat position
    unsettled_pnl: Decimal
    unsettled_pnl_roi: Decimal
    imr: Decimal
    mmr: Decimal
    initial_margin: Decimal
    maintenance_margin: Decimal
    liq_price: Decimal | None  # None = no liquidation price defined


@dataclass(frozen=True)
class AccountRiskReport:
    """Account-wide risk metrics plus the per-position breakdown."""

    positions: tuple[PositionRisk, ...]
    total_notional: Decimal
    total_unrealized_pnl: Decimal
    total_unsettled_pnl: Decimal
    total_collateral: Decimal
    total_value: Decimal
    available_balance: Decimal
    total_initial_margin_with_orders: Decimal
    free_collateral: Decimal  # negative = under-margined
    total_margin_ratio: Decimal  # Infinity without exposure
    current_leverage: Decimal
    total_unrealized_roi: Decimal  # NaN for zero total value


class AccountRiskEngine:
    """Computes the full risk report and order sizing for account snapshots.

    Args:
        engine_settings: Decimal precision and margin ratio rounding.
        solver_settings: Bounds for the quantity and liquidation solvers.
    """

    def __init__(
        self,
        engine_settings: EngineSettings,
        solver_settings: SolverSettings,
    ) -> None:
        self._settings = engine_settings
        self._quantity_solver = QuantitySolver(solver_settings)
        self._liquidation_solver = LiquidationSolver(solver_settings)

    def build_report(self, snapshot: AccountSnapshot) -> AccountRiskReport:
        """Compute every account and position metric for snapshot."""
        with decimal_context(self._settings.decimal_precision):
            positions = self._reprice(snapshot)
            ratios = {p.symbol: self._margin_ratios(snapshot, p) for p in positions}

            total_unrealized = aggregate.total_unrealized_pnl(positions)
            total_unsettled = aggregate.total_unsettlement_pnl(positions)
            holding = snapshot.holding

            total_collateral = collateral.total_collateral(
                usdc_holding=holding.usdc,
                non_usdc_holding=holding.non_usdc,
                unsettlement_pnl=total_unsettled,
            )
            total_value = collateral.total_value(
                total_unsettlement_pnl=total_unsettled,
                usdc_holding=holding.usdc,
                non_usdc_holding=holding.non_usdc,
            )
            im_with_orders = margin.total_initial_margin_with_orders(
                positions=positions,
                orders=snapshot.orders,
                mark_prices=snapshot.mark_prices,
                imr_factors=snapshot.imr_factors,
                max_leverage=snapshot.max_leverage,
                symbol_info=snapshot.symbol_info,
            )
            margin_ratio = aggregate.total_margin_ratio(
                total_collateral,
                positions,
                snapshot.mark_prices,
                dp=self._settings.margin_ratio_dp,
            )

            equity = total_collateral + total_unrealized
            position_margins = [
                PositionMargin(p.symbol, p.position_qty, p.mark_price, ratios[p.symbol][1])
                for p in positions
            ]
            position_risks = tuple(
                self._position_risk(snapshot, p, ratios[p.symbol], equity, position_margins)
                for p in positions
            )

            report = AccountRiskReport(
                positions=position_risks,
                total_notional=aggregate.total_notional(positions),
                total_unrealized_pnl=total_unrealized,
                total_unsettled_pnl=total_unsettled,
                total_collateral=total_collateral,
                total_value=total_value,
                available_balance=collateral.available_balance(holding.usdc, total_unsettled),
                total_initial_margin_with_orders=im_with_orders,
                free_collateral=collateral.free_collateral(total_collateral, im_with_orders),
                total_margin_ratio=margin_ratio,
                current_leverage=aggregate.current_leverage(margin_ratio),
                total_unrealized_roi=collateral.total_unrealized_roi(total_unrealized, total_value),
            )

        logger.info(
            "account_report_built",
            positions=len(position_risks),
            total_collateral=str(report.total_collateral),
            free_collateral=str(report.free_collateral),
            margin_ratio=str(report.total_margin_ratio),
        )
        return report

    def max_qty(
        self,
        snapshot: AccountSnapshot,
        symbol: str,
        side: OrderSide | str,
        dp: int | None = None,
    ) -> Decimal | None:
        """Maximum additional order quantity for symbol, sized against the whole account.

        Returns:
            The quantity, or None when the solver does not converge.

        Raises:
            InvalidInputError: If the snapshot has no risk parameters for symbol.
            MissingMarkPriceError: If symbol has no mark price.
        """
        params = snapshot.symbol_info.get(symbol)
        if params is None:
            raise InvalidInputError(f"no risk parameters for {symbol}")
        mark_price = snapshot.mark_price_for(symbol)
        if mark_price is None:
            raise MissingMarkPriceError(f"no mark price for {symbol}")

        with decimal_context(self._settings.decimal_precision):
            positions = self._reprice(snapshot)
            total_unsettled = aggregate.total_unsettlement_pnl(positions)
            total_collateral = collateral.total_collateral(
                usdc_holding=snapshot.holding.usdc,
                non_usdc_holding=snapshot.holding.non_usdc,
                unsettlement_pnl=total_unsettled,
            )
            other_ims = margin.other_initial_margins(
                positions=positions,
                orders=snapshot.orders,
                mark_prices=snapshot.mark_prices,
                imr_factors=snapshot.imr_factors,
                max_leverage=snapshot.max_leverage,
                exclude_symbol=symbol,
                symbol_info=snapshot.symbol_info,
            )
            buy_qty, sell_qty = margin.open_order_quantities(snapshot.orders, symbol)
            current = snapshot.position_for(symbol)

            return self._quantity_solver.max_qty(
                side,
                MaxQtyInputs(
                    symbol=symbol,
                    base_max_qty=params.base_max_qty,
                    total_collateral=total_collateral,
                    max_leverage=min(snapshot.max_leverage, params.max_leverage),
                    base_imr=params.base_imr,
                    other_ims=other_ims,
                    mark_price=mark_price,
                    position_qty=current.position_qty if current is not None else ZERO,
                    buy_orders_qty=buy_qty,
                    sell_orders_qty=sell_qty,
                    imr_factor=params.imr_factor,
                    taker_fee_rate=params.taker_fee_rate,
                    imr_factor_power=params.imr_factor_power,
                ),
                dp=dp,
            )

    def _reprice(self, snapshot: AccountSnapshot) -> tuple[Position, ...]:
        return tuple(
            replace(p, mark_price=snapshot.mark_prices.get(p.symbol, p.mark_price))
            for p in snapshot.positions
        )

    def _margin_ratios(
        self,
        snapshot: AccountSnapshot,
        pos: Position,
    ) -> tuple[Decimal, Decimal]:
        params = snapshot.symbol_info.get(pos.symbol)
        if params is None:
            return pos.imr, pos.mmr

        notional = position.position_notional(pos.position_qty, pos.mark_price)
        imr = position.imr(
            max_leverage=min(snapshot.max_leverage, params.max_leverage),
            base_imr=params.base_imr,
            imr_factor=params.imr_factor,
            position_notional=notional,
            orders_notional=ZERO,
            imr_factor_power=params.imr_factor_power,
        )
        mmr = position.mmr(
            base_mmr=params.base_mmr,
            base_imr=params.base_imr,
            imr_factor=params.imr_factor,
            position_notional=notional,
            imr_factor_power=params.imr_factor_power,
        )
        return imr, mmr

    def _position_risk(
        self,
        snapshot: AccountSnapshot,
        pos: Position,
        ratios: tuple[Decimal, Decimal],
        equity: Decimal,
        position_margins: list[PositionMargin],
    ) -> PositionRisk:
        imr, mmr = ratios
        pnl = position.unrealized_pnl(pos.mark_price, pos.average_open_price, pos.position_qty)
        unsettled = position.unsettlement_pnl(
            position_qty=pos.position_qty,
            mark_price=pos.mark_price,
            cost_position=pos.cost_position,
            sum_unitary_funding=pos.current_sum_unitary_funding,
            last_sum_unitary_funding=pos.last_sum_unitary_funding,
        )
        params = snapshot.symbol_info.get(pos.symbol)

        liq_price = self._liquidation_solver.liq_price(
            LiquidationInputs(
                symbol=pos.symbol,
                mark_price=pos.mark_price,
                total_collateral=equity,
                position_qty=pos.position_qty,
                positions=position_margins,
                mmr=mmr,
                tier=_tier_for(params),
            )
        )

        return PositionRisk(
            symbol=pos.symbol,
            side=pos.side,
            position_qty=pos.position_qty,
            mark_price=pos.mark_price,
            notional=position.position_notional(pos.position_qty, pos.mark_price),
            unrealized_pnl=pnl,
            unrealized_pnl_roi=position.unrealized_pnl_roi(
                pos.position_qty, pos.average_open_price, imr, pnl
            ),
            unsettled_pnl=unsettled,
            unsettled_pnl_roi=position.unsettled_pnl_roi(
                pos.position_qty, pos.average_open_price, imr, unsettled
            ),
            imr=imr,
            mmr=mmr,
            initial_margin=position.initial_margin(pos.position_qty, pos.mark_price, imr),
            maintenance_margin=position.maintenance_margin(pos.position_qty, pos.mark_price, mmr),
            liq_price=liq_price,
        )


def _tier_for(params: SymbolRiskParams | None) -> MMRTier | None:
    """Tiered MMR parameters, or None when the MMR cannot vary with price."""
    if params is None or params.imr_factor == ZERO:
        return None
    return MMRTier(
        base_mmr=params.base_mmr,
        base_imr=params.base_imr,
        imr_factor=params.imr_factor,
        imr_factor_power=params.imr_factor_power,
    )
