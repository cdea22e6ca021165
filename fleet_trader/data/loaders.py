from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from fleet_trader.types import EquitySnapshot, Trade

TRADE_COLUMNS = [
    "symbol",
    "side",
    "entry_price",
    "exit_price",
    "quantity",
    "pnl",
    "roi",
    "entry_time",
    "exit_time",
]


def _require_columns(df: pd.DataFrame, columns: List[str], path: Path) -> None:
    missing = [column for column in columns if column not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing columns: {', '.join(missing)}")


def load_price_history(prices_dir: Path, symbol: str) -> pd.DataFrame:
    path = prices_dir / f"{symbol.upper()}.csv"
    if not path.exists():
        raise FileNotFoundError(f"No price file for {symbol} at {path}")
    df = pd.read_csv(path, parse_dates=["timestamp"])
    if "price" not in df.columns and "close" in df.columns:
        df = df.rename(columns={"close": "price"})
    _require_columns(df, ["timestamp", "price"], path)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.dropna(subset=["price"])
    return df.sort_values("timestamp").reset_index(drop=True)


def load_trades(path: Path) -> List[Trade]:
    if not path.exists():
        return []
    df = pd.read_csv(path, parse_dates=["entry_time", "exit_time"])
    _require_columns(df, TRADE_COLUMNS, path)
    df["entry_time"] = pd.to_datetime(df["entry_time"], utc=True)
    df["exit_time"] = pd.to_datetime(df["exit_time"], utc=True)
    return [
        Trade(
            symbol=str(row.symbol),
            side=str(row.side).upper(),
            entry_price=float(row.entry_price),
            exit_price=float(row.exit_price),
            quantity=float(row.quantity),
            pnl=float(row.pnl),
            roi=float(row.roi),
            entry_time=row.entry_time.to_pydatetime(),
            exit_time=row.exit_time.to_pydatetime(),
        )
        for row in df.itertuples(index=False)
    ]


def load_equity_snapshots(path: Path) -> List[EquitySnapshot]:
    df = pd.read_csv(path, parse_dates=["timestamp"])
    if "account_value" not in df.columns and "equity" in df.columns:
        df = df.rename(columns={"equity": "account_value"})
    _require_columns(df, ["timestamp", "account_value"], path)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    snapshots: List[EquitySnapshot] = []
    for row in df.itertuples(index=False):
        snapshots.append(
            EquitySnapshot(
                timestamp=row.timestamp.to_pydatetime(),
                account_value=float(row.account_value),
                total_pnl=float(getattr(row, "total_pnl", 0.0)),
                return_percent=float(getattr(row, "return_percent", 0.0)),
            )
        )
    return snapshots
