"""Command-line entry point: compute the risk report for a snapshot file.

Component wiring order:
1. AppSettings (configuration)
2. Logging setup
3. Snapshot loading
4. AccountRiskEngine (report + optional max quantity)

Usage:
    perp-risk snapshot.json
    perp-risk snapshot.json --max-qty PERP_ETH_USDC --side BUY
"""

import argparse
import json
import sys
from pathlib import Path

from perp_risk.config import AppSettings
from perp_risk.exceptions import MarginEngineError
from perp_risk.logging import get_logger, setup_logging
from perp_risk.report import AccountRiskEngine, AccountRiskReport
from perp_risk.snapshot import load_snapshot


def _log_report(report: AccountRiskReport) -> None:
    logger = get_logger("perp_risk.main")
    for risk in report.positions:
        logger.info(
            "position_risk",
            symbol=risk.symbol,
            side=risk.side.value,
            position_qty=str(risk.position_qty),
            notional=str(risk.notional),
            unrealized_pnl=str(risk.unrealized_pnl),
            unrealized_pnl_roi=str(risk.unrealized_pnl_roi),
            unsettled_pnl=str(risk.unsettled_pnl),
            unsettled_pnl_roi=str(risk.unsettled_pnl_roi),
            imr=str(risk.imr),
            mmr=str(risk.mmr),
            initial_margin=str(risk.initial_margin),
            maintenance_margin=str(risk.maintenance_margin),
            liq_price=None if risk.liq_price is None else str(risk.liq_price),
        )
    logger.info(
        "account_risk",
        total_notional=str(report.total_notional),
        total_unrealized_pnl=str(report.total_unrealized_pnl),
        total_unsettled_pnl=str(report.total_unsettled_pnl),
        total_collateral=str(report.total_collateral),
        total_value=str(report.total_value),
        available_balance=str(report.available_balance),
        total_initial_margin_with_orders=str(report.total_initial_margin_with_orders),
        free_collateral=str(report.free_collateral),
        total_margin_ratio=str(report.total_margin_ratio),
        current_leverage=str(report.current_leverage),
        total_unrealized_roi=str(report.total_unrealized_roi),
    )


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, compute the report and return a process exit code."""
    parser = argparse.ArgumentParser(prog="perp-risk", description=__doc__.splitlines()[0])
    parser.add_argument("snapshot", type=Path, help="path to an account snapshot JSON file")
    parser.add_argument("--max-qty", metavar="SYMBOL", help="also size an order on SYMBOL")
    parser.add_argument("--side", default="BUY", choices=["BUY", "SELL"])
    parser.add_argument("--dp", type=int, default=None, help="quantity decimal places")
    args = parser.parse_args(argv)

    # 1-2. Settings and logging
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("perp_risk.main")

    # 3. Snapshot
    try:
        data = json.loads(args.snapshot.read_text(encoding="utf-8"))
        snapshot = load_snapshot(data, settings.engine.default_imr_factor_power)
    except (OSError, json.JSONDecodeError, MarginEngineError) as exc:
        logger.error("snapshot_load_failed", path=str(args.snapshot), error=str(exc))
        return 1

    # 4. Engine
    engine = AccountRiskEngine(settings.engine, settings.solver)
    try:
        _log_report(engine.build_report(snapshot))
        if args.max_qty:
            qty = engine.max_qty(snapshot, args.max_qty, args.side, dp=args.dp)
            logger.info(
                "max_qty",
                symbol=args.max_qty,
                side=args.side,
                qty=None if qty is None else str(qty),
            )
    except MarginEngineError as exc:
        logger.error("risk_calculation_failed", error=str(exc))
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
