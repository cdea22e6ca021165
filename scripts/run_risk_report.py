from __future__ import annotations

import argparse
from dataclasses import asdict
import json
from pathlib import Path

from fleet_trader.config import load_config
from fleet_trader.data import load_equity_snapshots
from fleet_trader.risk import calculate_all_risk_metrics
from fleet_trader.utils import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute drawdown, volatility and Sharpe/Sortino/Calmar from an equity CSV."
    )
    parser.add_argument("equity_csv", help="CSV with timestamp and account_value (or equity) columns.")
    parser.add_argument(
        "--output",
        default="",
        help="Optional JSON path for the report.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_config()
    configure_logging(config.logging.level, config.logging.json_output)

    snapshots = load_equity_snapshots(Path(args.equity_csv))
    metrics = calculate_all_risk_metrics(snapshots)

    print("\nRisk report")
    print(f"Snapshots: {len(snapshots)}")
    for key, value in asdict(metrics).items():
        print(f"{key}: {value:.6f}")

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(asdict(metrics), indent=2), encoding="utf-8")
        print(f"\nSaved to {output}")


if __name__ == "__main__":
    main()
