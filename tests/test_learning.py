"""
Tests for performance analysis, parameter learning and the parameter store.
"""
from datetime import datetime, timezone

import pytest

from fleet_trader.learning import (
    LearningEngine,
    ParameterStore,
    analyze_performance,
    calculate_optimization_score,
    compare_parameters,
    estimate_performance_improvement,
    format_parameters,
    generate_learning_update,
    rules_for,
)
from fleet_trader.learning.engine import focus_momentum_on_best_symbol
from fleet_trader.strategies.settings import DEFAULT_PARAMETERS
from fleet_trader.types import PerformanceMetrics

NOW = datetime(2024, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def winning_trades(make_trade):
    """Two early losses followed by eight wins."""
    pnls = [-5.0, -5.0] + [10.0] * 8
    return [make_trade(pnl, index=i) for i, pnl in enumerate(pnls)]


@pytest.fixture
def losing_trades(make_trade):
    """Seven losses followed by three wins."""
    pnls = [-10.0] * 7 + [10.0] * 3
    return [make_trade(pnl, index=i) for i, pnl in enumerate(pnls)]


class TestAnalyzePerformance:
    def test_empty(self):
        metrics = analyze_performance([])
        assert metrics.total_trades == 0
        assert metrics.win_rate == 0.0

    def test_summary(self, winning_trades):
        metrics = analyze_performance(winning_trades)
        assert metrics.total_trades == 10
        assert metrics.winning_trades == 8
        assert metrics.losing_trades == 2
        assert metrics.win_rate == pytest.approx(80.0)
        assert metrics.avg_win == pytest.approx(10.0)
        assert metrics.avg_loss == pytest.approx(5.0)
        assert metrics.profit_factor == pytest.approx(2.0)
        assert metrics.sharpe_ratio == pytest.approx(0.07 / 0.06)
        assert metrics.max_drawdown == 0.0

    def test_profit_factor_without_losses(self, make_trade):
        metrics = analyze_performance([make_trade(5.0, index=i) for i in range(3)])
        assert metrics.profit_factor == 999.0

    def test_order_does_not_matter(self, winning_trades):
        assert analyze_performance(list(reversed(winning_trades))) == analyze_performance(winning_trades)

    def test_drawdown_from_peak_trade(self, make_trade):
        trades = [make_trade(10.0, index=0), make_trade(5.0, index=1)]
        assert analyze_performance(trades).max_drawdown == pytest.approx(50.0)

    def test_best_and_worst_symbol(self, make_trade):
        trades = [
            make_trade(5.0, index=0, symbol="ETHUSDT"),
            make_trade(-5.0, index=1, symbol="SOLUSDT"),
            make_trade(5.0, index=2, symbol="SOLUSDT"),
        ]
        metrics = analyze_performance(trades)
        assert metrics.best_symbol == "ETHUSDT"
        assert metrics.worst_symbol == "SOLUSDT"


def test_optimization_score():
    metrics = PerformanceMetrics(win_rate=65, profit_factor=2.2, sharpe_ratio=1.2, max_drawdown=0)
    assert calculate_optimization_score(metrics) == 95.0
    assert calculate_optimization_score(PerformanceMetrics(max_drawdown=40, sharpe_ratio=-1)) == 30.0


class TestLearningUpdate:
    def test_requires_enough_trades(self, winning_trades):
        params = DEFAULT_PARAMETERS["momentum"]
        metrics = analyze_performance(winning_trades[:9])
        update = generate_learning_update("m-1", params, metrics, strategy="momentum", now=NOW)
        assert update.new_parameters == params
        assert update.confidence == 0.0
        assert update.reason.startswith("Insufficient closed trades (9/10)")

    def test_rewards_strong_performance(self, winning_trades):
        params = DEFAULT_PARAMETERS["momentum"]
        metrics = analyze_performance(winning_trades)
        update = generate_learning_update("m-1", params, metrics, strategy="momentum", now=NOW)
        new = update.new_parameters
        assert new.leverage == pytest.approx(3.3)
        assert new.position_size == pytest.approx(0.33)
        assert new.stop_loss_percent == params.stop_loss_percent
        assert new.momentum_threshold == 100.0
        assert update.confidence == pytest.approx(0.55)
        assert new.optimization_score == 66
        assert new.last_updated == NOW
        assert "High win rate (80.0%)" in update.reason
        assert "Focused on best symbol (BTCUSDT)." in update.reason

    def test_strategy_rules_are_optional(self, winning_trades):
        params = DEFAULT_PARAMETERS["momentum"]
        update = generate_learning_update("m-1", params, analyze_performance(winning_trades), now=NOW)
        assert update.new_parameters.momentum_threshold == 70
        assert update.confidence == pytest.approx(0.45)
        assert update.new_parameters.optimization_score == 63

    def test_cuts_leverage_on_losses(self, losing_trades):
        params = DEFAULT_PARAMETERS["arbitrage"]
        update = generate_learning_update("a-1", params, analyze_performance(losing_trades), strategy="arbitrage", now=NOW)
        assert update.new_parameters.leverage == pytest.approx(1.6)
        assert update.confidence == pytest.approx(0.4)

    def test_no_change(self, make_trade):
        trades = [make_trade(-8.0, index=i) for i in range(5)] + [make_trade(10.0, index=i + 5) for i in range(5)]
        params = DEFAULT_PARAMETERS["grid"]
        update = generate_learning_update("g-1", params, analyze_performance(trades), strategy="grid", now=NOW)
        assert update.reason == "No significant changes in performance."
        assert update.confidence == 0.0
        assert update.new_parameters.leverage == params.leverage

    def test_pure(self, winning_trades):
        params = DEFAULT_PARAMETERS["ml_scalper"]
        metrics = analyze_performance(winning_trades)
        first = generate_learning_update("ml-1", params, metrics, strategy="ml_scalper", now=NOW)
        second = generate_learning_update("ml-1", params, metrics, strategy="ml_scalper", now=NOW)
        assert first == second
        assert first.new_parameters.ml_confidence_threshold == pytest.approx(0.665)

    def test_learned_thresholds_are_rounded(self, winning_trades):
        metrics = analyze_performance(winning_trades)
        params = DEFAULT_PARAMETERS["momentum"].replace(momentum_threshold=33.3)
        update = generate_learning_update("m-1", params, metrics, strategy="momentum", now=NOW)
        assert update.new_parameters.momentum_threshold == 59.94

        current = DEFAULT_PARAMETERS["ml_scalper"]
        for _ in range(3):
            current = generate_learning_update("ml-1", current, metrics, strategy="ml_scalper", now=NOW).new_parameters
            assert round(current.ml_confidence_threshold, 3) == current.ml_confidence_threshold

    def test_reapplying_gives_same_adjustment(self, losing_trades):
        metrics = analyze_performance(losing_trades)
        first = generate_learning_update("a-1", DEFAULT_PARAMETERS["arbitrage"], metrics, now=NOW)
        second = generate_learning_update("a-1", first.new_parameters, metrics, now=NOW)
        assert second.reason == first.reason
        assert second.confidence == first.confidence
        assert second.new_parameters.leverage == pytest.approx(1.3)

    def test_rule_order(self):
        assert len(rules_for(None)) == 7
        assert rules_for("momentum")[-1] is focus_momentum_on_best_symbol
        assert rules_for("grid") == rules_for(None)


class TestParameterStore:
    def test_defaults(self):
        store = ParameterStore()
        assert store.get("x", "grid") == DEFAULT_PARAMETERS["grid"]
        assert store.get("x", "unknown") == DEFAULT_PARAMETERS["arbitrage"]

    def test_round_trip(self, tmp_path):
        store = ParameterStore()
        params = DEFAULT_PARAMETERS["momentum"].replace(leverage=2.5, last_updated=NOW)
        store.put("m-1", params)
        path = store.save(tmp_path / "params.json")
        loaded = ParameterStore.load(path)
        assert loaded.get("m-1", "momentum") == params

    def test_load_missing_file(self, tmp_path):
        store = ParameterStore.load(tmp_path / "missing.json")
        assert store.get("m-1", "momentum") == DEFAULT_PARAMETERS["momentum"]


class TestLearningEngine:
    def test_applies_confident_update(self, winning_trades):
        store = ParameterStore()
        engine = LearningEngine(store)
        update = engine.run("m-1", "momentum", winning_trades)
        assert store.get("m-1", "momentum") == update.new_parameters

    def test_skips_when_insufficient(self, winning_trades):
        store = ParameterStore()
        LearningEngine(store).run("m-1", "momentum", winning_trades[:3])
        assert store.get("m-1", "momentum") == DEFAULT_PARAMETERS["momentum"]


class TestReport:
    def test_format(self):
        text = format_parameters(DEFAULT_PARAMETERS["momentum"])
        assert text == "Leverage: 3x | SL: 2% | TP: 3% | Position: 30% | Momentum: 70"

    def test_compare(self):
        old = DEFAULT_PARAMETERS["momentum"]
        new = old.replace(leverage=3.3)
        changes = compare_parameters(old, new)
        assert list(changes) == ["leverage"]
        assert changes["leverage"]["change"] == "10.0%"

    def test_estimate(self):
        old = DEFAULT_PARAMETERS["momentum"]
        new = old.replace(leverage=3.3, position_size=0.33)
        assert estimate_performance_improvement(old, new, 80.0) == pytest.approx(7.5)
