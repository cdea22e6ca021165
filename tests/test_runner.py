"""
Tests for the periodic agent runner.
"""
import threading

import pytest

from fleet_trader.runtime import AgentRunner
from fleet_trader.strategies import build_strategy
from fleet_trader.types import HOLD, AccountSnapshot


@pytest.fixture
def strategy():
    """Momentum engine on a single symbol."""
    return build_strategy("momentum", "m-1", "BTCUSDT")


@pytest.fixture
def sink():
    """Collects emitted signals."""
    received = []

    def _sink(agent_id, signal):
        received.append((agent_id, signal))

    _sink.received = received
    return _sink


def _runner(strategy, sink, price_feed=None, account_feed=None, **kwargs):
    return AgentRunner(
        "m-1",
        strategy,
        price_feed or (lambda: 100.0),
        account_feed or (lambda: AccountSnapshot(equity=10_000.0)),
        sink,
        interval_seconds=0,
        **kwargs,
    )


def test_runs_requested_cycles(strategy, sink):
    runner = _runner(strategy, sink)
    assert runner.run(max_cycles=3) == 3
    assert len(sink.received) == 3
    assert len(strategy.history) == 3


def test_stop_before_start(strategy, sink):
    runner = _runner(strategy, sink)
    runner.stop()
    assert runner.run() == 0
    assert sink.received == []


def test_stop_from_sink(strategy):
    stop = threading.Event()
    seen = []

    def _sink(agent_id, signal):
        seen.append(signal)
        if len(seen) == 2:
            stop.set()

    runner = _runner(strategy, _sink, stop_event=stop)
    assert runner.run() == 2


def test_feed_failure_emits_hold(strategy, sink):
    def _broken():
        raise ConnectionError("exchange down")

    runner = _runner(strategy, sink, price_feed=_broken)
    signal = runner.run_cycle()
    assert signal.action == HOLD
    assert signal.reason == "Feed unavailable: exchange down"
    assert sink.received[0] == ("m-1", signal)


def test_tick_timestamp_is_used(strategy, sink, start_time):
    runner = _runner(strategy, sink, price_feed=lambda: (101.0, start_time))
    runner.run_cycle()
    point = strategy.history.points()[-1]
    assert point.price == 101.0
    assert point.timestamp == start_time


def test_optional_feed_failure_is_tolerated(strategy, sink):
    def _no_book(symbol):
        raise TimeoutError("slow")

    runner = _runner(strategy, sink, order_book_feed=_no_book)
    signal = runner.run_cycle()
    assert signal.action == HOLD
    assert "Building history" in signal.reason


def test_parameters_refreshed_each_cycle(strategy, sink):
    refreshed = strategy.parameters.replace(leverage=1.0)
    runner = _runner(strategy, sink, parameter_source=lambda: refreshed)
    runner.run_cycle()
    assert strategy.parameters.leverage == 1.0


def test_failing_cycle_does_not_stop_loop(strategy):
    calls = []

    def _sink(agent_id, signal):
        calls.append(signal)
        raise RuntimeError("sink offline")

    runner = _runner(strategy, _sink)
    assert runner.run(max_cycles=2) == 2
    assert len(calls) == 2
