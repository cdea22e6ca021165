"""
Tests for the CSV loaders.
"""
from datetime import timedelta

import pandas as pd
import pytest

from fleet_trader.data import load_equity_snapshots, load_price_history, load_trades


def test_price_history_accepts_close_column(tmp_path):
    pd.DataFrame(
        {"timestamp": ["2024-01-01T00:02:00Z", "2024-01-01T00:01:00Z"], "close": [2.0, 1.0]}
    ).to_csv(tmp_path / "BTCUSDT.csv", index=False)
    frame = load_price_history(tmp_path, "btcusdt")
    assert list(frame["price"]) == [1.0, 2.0]


def test_price_history_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_price_history(tmp_path, "ETHUSDT")


def test_trades_round_trip(tmp_path, make_trade):
    trades = [make_trade(5.0, index=0), make_trade(-2.0, index=1, symbol="ETHUSDT")]
    path = tmp_path / "trades.csv"
    pd.DataFrame([t.__dict__ for t in trades]).to_csv(path, index=False)
    loaded = load_trades(path)
    assert [t.symbol for t in loaded] == ["BTCUSDT", "ETHUSDT"]
    assert loaded[1].pnl == pytest.approx(-2.0)
    assert loaded[0].exit_time == trades[0].exit_time


def test_trades_missing_file_is_empty(tmp_path):
    assert load_trades(tmp_path / "none.csv") == []


def test_trades_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"symbol": ["X"], "entry_time": ["2024-01-01"], "exit_time": ["2024-01-01"]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_trades(path)


def test_equity_snapshots(tmp_path, start_time):
    path = tmp_path / "equity.csv"
    pd.DataFrame(
        {
            "timestamp": [start_time, start_time + timedelta(days=1)],
            "equity": [100.0, 110.0],
        }
    ).to_csv(path, index=False)
    snapshots = load_equity_snapshots(path)
    assert [s.account_value for s in snapshots] == [100.0, 110.0]
    assert snapshots[1].timestamp == start_time + timedelta(days=1)
