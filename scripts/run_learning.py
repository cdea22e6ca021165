from __future__ import annotations

import argparse
from pathlib import Path

from fleet_trader.config import load_config
from fleet_trader.data import load_trades
from fleet_trader.learning import (
    LearningEngine,
    ParameterStore,
    calculate_optimization_score,
    compare_parameters,
    estimate_performance_improvement,
    format_parameters,
)
from fleet_trader.strategies import VARIANTS
from fleet_trader.utils import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run one learning pass for an agent from its closed trades."
    )
    parser.add_argument("--agent-id", required=True, help="Agent identifier.")
    parser.add_argument(
        "--strategy",
        choices=sorted(VARIANTS),
        required=True,
        help="Strategy variant the agent runs.",
    )
    parser.add_argument(
        "--trades",
        default="",
        help="Closed trades CSV. Defaults to <trades_dir>/<agent-id>.csv.",
    )
    parser.add_argument(
        "--store",
        default="",
        help="Parameter store JSON. Defaults to <outputs_dir>/parameters.json.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_config()
    configure_logging(config.logging.level, config.logging.json_output)
    config.ensure_dirs()

    trades_path = Path(args.trades) if args.trades else config.data.trades_dir / f"{args.agent_id}.csv"
    store_path = Path(args.store) if args.store else config.data.outputs_dir / "parameters.json"

    trades = load_trades(trades_path)
    store = ParameterStore.load(store_path)
    engine = LearningEngine(store, min_trades=config.learning.min_closed_trades)
    update = engine.run(args.agent_id, args.strategy, trades)
    store.save(store_path)

    print("\nLearning pass complete")
    print(f"Agent: {args.agent_id} ({args.strategy})")
    print(f"Closed trades: {update.performance_before.total_trades}")
    print(f"Win rate: {update.performance_before.win_rate:.2f}%")
    print(f"Confidence: {update.confidence:.2f}")
    print(f"Performance score: {calculate_optimization_score(update.performance_before):.0f}")
    print(f"Reason: {update.reason}")
    print(f"Before: {format_parameters(update.old_parameters)}")
    print(f"After:  {format_parameters(update.new_parameters)}")
    for name, change in compare_parameters(update.old_parameters, update.new_parameters).items():
        print(f"- {name}: {change['old']} -> {change['new']} ({change['change']})")
    improvement = estimate_performance_improvement(
        update.old_parameters,
        update.new_parameters,
        update.performance_before.win_rate,
    )
    print(f"Estimated improvement: {improvement:+.2f}")
    print(f"Parameters saved to {store_path}")


if __name__ == "__main__":
    main()
