"""
Unit tests for the risk manager.
"""
import math

import pytest

from fleet_trader.risk import RiskLimits, RiskManager
from fleet_trader.types import BUY, SELL


@pytest.fixture
def manager():
    """Risk manager with a 25% drawdown limit."""
    return RiskManager(RiskLimits(max_drawdown_percent=25.0))


class TestCircuitBreaker:
    def test_trips_at_limit(self, manager):
        state = manager.check_circuit_breaker(70.0, 100.0)
        assert state.should_stop is True
        assert state.drawdown_percent == pytest.approx(30.0)

    def test_within_limit(self, manager):
        state = manager.check_circuit_breaker(80.0, 100.0)
        assert state.should_stop is False
        assert state.drawdown_percent == pytest.approx(20.0)

    def test_exact_limit_trips(self, manager):
        assert manager.check_circuit_breaker(75.0, 100.0).should_stop is True

    def test_gain_is_zero_drawdown(self, manager):
        assert manager.check_circuit_breaker(120.0, 100.0).drawdown_percent == 0.0

    @pytest.mark.parametrize("reference", [0.0, -5.0, math.nan])
    def test_invalid_reference_trips(self, manager, reference):
        assert manager.check_circuit_breaker(100.0, reference).should_stop is True


class TestPositionSize:
    def test_scales_with_volatility_and_leverage(self):
        manager = RiskManager(RiskLimits(max_position_size_percent=10.0))
        assert manager.calculate_position_size(10_000, 0.1, 2.0, 100.0) == pytest.approx(1_600.0)

    def test_volatility_factor_floor(self):
        manager = RiskManager(RiskLimits(max_position_size_percent=10.0))
        assert manager.calculate_position_size(10_000, 0.9, 1.0, 100.0) == pytest.approx(500.0)

    def test_non_increasing_in_volatility(self, manager):
        sizes = [manager.calculate_position_size(10_000, vol, 2.0, 50.0) for vol in [0, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0]]
        assert all(a >= b for a, b in zip(sizes, sizes[1:]))

    def test_capped_by_leveraged_equity(self):
        manager = RiskManager(RiskLimits(max_position_size_percent=200.0))
        assert manager.calculate_position_size(1_000, 0.0, 2.0, 10.0) == pytest.approx(2_000.0)

    @pytest.mark.parametrize(
        "equity, vol, leverage, price",
        [(0, 0.01, 1, 100), (1000, -0.1, 1, 100), (1000, 0.01, 0, 100), (1000, 0.01, 1, 0), (math.inf, 0.01, 1, 100)],
    )
    def test_invalid_inputs_give_zero(self, manager, equity, vol, leverage, price):
        assert manager.calculate_position_size(equity, vol, leverage, price) == 0.0


class TestLimits:
    def test_trade_limit(self):
        manager = RiskManager(RiskLimits(max_daily_trades=3))
        allowed, _ = manager.check_trade_limit(2)
        blocked, reason = manager.check_trade_limit(3)
        assert allowed is True
        assert blocked is False
        assert "limit" in reason

    def test_win_rate(self):
        manager = RiskManager(RiskLimits(min_win_rate=0.5))
        assert manager.is_win_rate_acceptable(0.5)
        assert not manager.is_win_rate_acceptable(0.49)

    def test_slippage_moves_against_position(self):
        manager = RiskManager(RiskLimits(slippage_percent=1.0))
        assert manager.apply_slippage(100.0, BUY) == pytest.approx(99.0)
        assert manager.apply_slippage(100.0, SELL) == pytest.approx(101.0)


class TestPositionRisk:
    def test_acceptable_trade(self):
        manager = RiskManager()
        risk = manager.assess_position_risk(100.0, 99.0, 102.0, 10, 10_000, 1.0, 0.01)
        assert risk.acceptable
        assert risk.max_loss_amount == pytest.approx(10.0)
        assert risk.risk_reward_ratio == pytest.approx(2.0)

    def test_poor_reward_ratio(self):
        risk = RiskManager().assess_position_risk(100.0, 99.0, 101.0, 10, 10_000, 1.0, 0.01)
        assert risk.recommended_action == "REDUCE"

    def test_excess_leverage(self):
        risk = RiskManager().assess_position_risk(100.0, 99.0, 102.0, 10, 10_000, 5.0, 0.01)
        assert not risk.acceptable
        assert "Leverage" in risk.assessment

    def test_high_volatility(self):
        risk = RiskManager().assess_position_risk(100.0, 99.0, 102.0, 10, 10_000, 1.0, 0.06)
        assert not risk.acceptable

    def test_oversized_loss(self):
        risk = RiskManager().assess_position_risk(100.0, 50.0, 200.0, 100, 10_000, 1.0, 0.01)
        assert risk.risk_percent == pytest.approx(50.0)
        assert not risk.acceptable
