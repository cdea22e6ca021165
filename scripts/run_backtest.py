from __future__ import annotations

import argparse
from datetime import datetime, timezone

from fleet_trader.backtest import BacktestEngine, ReplayFeed, SimBroker
from fleet_trader.config import load_config
from fleet_trader.data import load_price_history
from fleet_trader.strategies import VARIANTS, build_strategy
from fleet_trader.utils import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay stored prices through one strategy agent and report its risk metrics."
    )
    parser.add_argument(
        "--strategy",
        choices=sorted(VARIANTS),
        default="momentum",
        help="Strategy variant to run.",
    )
    parser.add_argument(
        "--symbol",
        default="",
        help="Symbol to replay. Defaults to the first configured symbol.",
    )
    parser.add_argument(
        "--run-name",
        default="",
        help="Optional label for output filenames.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_config()
    configure_logging(config.logging.level, config.logging.json_output)
    config.ensure_dirs()

    symbol = (args.symbol or config.data.symbols[0]).upper()
    prices = load_price_history(config.data.prices_dir, symbol)
    feed = ReplayFeed(symbol, prices)
    broker = SimBroker(
        starting_cash=config.backtest.starting_cash,
        commission_bps=config.backtest.commission_bps,
        slippage_bps=config.backtest.slippage_bps,
    )
    strategy = build_strategy(
        args.strategy,
        agent_id=f"{args.strategy}-{symbol.lower()}",
        symbol=symbol,
        loop=config.agent,
    )

    engine = BacktestEngine(strategy=strategy, feed=feed, broker=broker)
    result = engine.run()

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    run_name = args.run_name if args.run_name else f"{args.strategy}_{symbol}_{timestamp}"
    output_paths = BacktestEngine.save(result, config.data.outputs_dir, run_name)

    print("\nBacktest complete")
    print(f"Strategy: {args.strategy}")
    print(f"Symbol: {symbol}")
    for key, value in result.summary.items():
        if isinstance(value, float):
            print(f"{key}: {value:.6f}")
        else:
            print(f"{key}: {value}")
    print("\nOutput files:")
    for label, path in output_paths.items():
        print(f"- {label}: {path}")


if __name__ == "__main__":
    main()
