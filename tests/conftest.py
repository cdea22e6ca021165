"""
Shared fixtures for the fleet trader test suite.
"""
from datetime import datetime, timedelta, timezone

import pytest

from fleet_trader.types import AccountSnapshot, Trade


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests that drive several components together")


@pytest.fixture
def start_time():
    """A fixed UTC starting point for synthetic ticks."""
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    """Returns a function mapping a tick index to a timestamp spaced by `step_seconds`."""
    def _at(index, step_seconds=1.0):
        return start_time + timedelta(seconds=index * step_seconds)
    return _at


@pytest.fixture
def account():
    """Factory for account snapshots."""
    def _make(equity=10_000.0, positions=None):
        return AccountSnapshot(equity=equity, positions=list(positions or []))
    return _make


@pytest.fixture
def make_trade(start_time):
    """Factory for closed trades, each closing one hour after the previous."""
    def _make(pnl, index=0, symbol="BTCUSDT", roi=None, quantity=1.0):
        entry = 100.0
        exit_price = entry + pnl / quantity
        return Trade(
            symbol=symbol,
            side="LONG",
            entry_price=entry,
            exit_price=exit_price,
            quantity=quantity,
            pnl=pnl,
            roi=pnl / (entry * quantity) * 100.0 if roi is None else roi,
            entry_time=start_time + timedelta(hours=index),
            exit_time=start_time + timedelta(hours=index, minutes=30),
        )
    return _make
