"""
Unit tests for the technical indicator functions.
"""
import pytest

from fleet_trader.market import analyzer
from fleet_trader.types import BUY, SELL, OrderBookSnapshot


class TestAverages:
    def test_sma_over_window(self):
        assert analyzer.sma([1, 2, 3, 4], 2) == pytest.approx(3.5)

    def test_sma_short_history_returns_last_price(self):
        assert analyzer.sma([5.0], 10) == 5.0

    def test_sma_empty(self):
        assert analyzer.sma([], 5) == 0.0

    def test_ema_of_flat_series(self):
        assert analyzer.ema([7.0] * 30, 20) == pytest.approx(7.0)


class TestVolatility:
    def test_too_short(self):
        assert analyzer.volatility([100, 100]) == 0.0

    def test_population_std_of_returns(self):
        assert analyzer.volatility([100, 110, 99]) == pytest.approx(0.1)

    def test_uses_lookback_window(self):
        prices = [100, 150, 60] + [100.0] * 20
        assert analyzer.volatility(prices, 20) == 0.0


class TestRSI:
    def test_neutral_when_short(self):
        assert analyzer.rsi([1, 2, 3], 14) == 50.0

    def test_all_gains(self):
        assert analyzer.rsi(list(range(1, 30)), 14) == 100.0

    def test_all_losses(self):
        assert analyzer.rsi(list(range(30, 1, -1)), 14) == pytest.approx(0.0)

    def test_flat(self):
        assert analyzer.rsi([10.0] * 20, 14) == 50.0

    def test_bounded(self):
        prices = [100, 102, 101, 104, 103, 99, 98, 101, 105, 104, 102, 103, 106, 104, 101, 100]
        value = analyzer.rsi(prices, 14)
        assert 0.0 <= value <= 100.0


class TestMACD:
    def test_zero_when_short(self):
        result = analyzer.macd([100.0] * 10)
        assert result.macd == 0.0
        assert result.strength == 0.0

    def test_rising_series_has_positive_strength(self):
        prices = [100.0] * 30 + [100.0 + i for i in range(1, 11)]
        result = analyzer.macd(prices)
        assert result.macd > 0
        assert 0 < result.strength <= 100.0

    def test_strength_is_clipped(self):
        prices = [100.0] * 30 + [100.0 * 1.1 ** i for i in range(1, 11)]
        assert analyzer.macd(prices).strength == 100.0


class TestBands:
    def test_short_history_collapses_to_last(self):
        bands = analyzer.bollinger_bands([1.0, 2.0], 20)
        assert bands.upper == bands.middle == bands.lower == 2.0

    def test_flat_series_has_zero_width(self):
        bands = analyzer.bollinger_bands([50.0] * 20, 20)
        assert bands.middle == pytest.approx(50.0)
        assert bands.width == pytest.approx(0.0)

    def test_upper_above_lower(self):
        prices = [100 + (i % 5) for i in range(25)]
        bands = analyzer.bollinger_bands(prices, 20)
        assert bands.lower < bands.middle < bands.upper


class TestMomentumAndTargets:
    def test_momentum_percent(self):
        prices = [100.0] * 10 + [110.0]
        assert analyzer.momentum(prices, 10) == pytest.approx(10.0)

    def test_momentum_short(self):
        assert analyzer.momentum([1.0, 2.0], 10) == 0.0

    def test_adaptive_targets_buy(self):
        targets = analyzer.adaptive_targets(100.0, 0.02, BUY)
        assert targets.take_profit == pytest.approx(102.2)
        assert targets.stop_loss == pytest.approx(99.0)
        assert targets.risk_amount == pytest.approx(2.0)

    def test_adaptive_targets_sell_mirrors(self):
        targets = analyzer.adaptive_targets(100.0, 0.02, SELL)
        assert targets.take_profit == pytest.approx(97.8)
        assert targets.stop_loss == pytest.approx(101.0)


class TestPatterns:
    def test_trend_up(self):
        assert analyzer.detect_trend([float(i) for i in range(10)]) == "UP"

    def test_trend_flat_when_short(self):
        assert analyzer.detect_trend([1.0, 2.0]) == "FLAT"

    def test_reversal_up(self):
        assert analyzer.detect_reversal([100, 99, 98, 99, 99]) == "UP"

    def test_reversal_down(self):
        assert analyzer.detect_reversal([100, 101, 102, 101, 101]) == "DOWN"

    def test_levels(self):
        levels = analyzer.detect_levels([3.0, 1.0, 2.0])
        assert levels.support == 1.0
        assert levels.resistance == 3.0

    def test_trend_slope_sign(self):
        assert analyzer.trend_slope([1.0, 2.0, 3.0]) > 0
        assert analyzer.trend_slope([3.0, 2.0, 1.0]) < 0


def test_order_book_stats():
    book = OrderBookSnapshot(bids=[(99.0, 3.0)], asks=[(101.0, 1.0)])
    stats = analyzer.order_book_stats(book)
    assert stats.imbalance == pytest.approx(0.5)
    assert stats.spread_percent == pytest.approx(2.0)


def test_order_book_stats_empty():
    assert analyzer.order_book_stats(None).imbalance == 0.0
