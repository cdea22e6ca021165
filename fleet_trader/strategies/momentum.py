from __future__ import annotations

from typing import Optional, Tuple

from fleet_trader.market import analyzer
from fleet_trader.types import BUY, LONG, SELL, TradeSignal
from .base import MarketContext, StrategyState, exit_signal, gain_percent, sized_signal, target_notional

OVERBOUGHT_RSI = 70.0


def rsi_thresholds(volatility: float) -> Tuple[float, float]:
    low = max(20.0, 35.0 - volatility * 200.0)
    high = min(80.0, 65.0 + volatility * 200.0)
    return low, high


class MomentumStrategy:
    name = "momentum"
    protective_targets = True

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        if ctx.settings.scale_out_percent is None:
            return None
        gain = gain_percent(ctx, state.entry_price)
        rsi = analyzer.rsi(ctx.prices, 14)
        if ctx.position is not None and ctx.position.side == LONG:
            extended = rsi > OVERBOUGHT_RSI
        else:
            extended = rsi < 100.0 - OVERBOUGHT_RSI
        if gain < ctx.settings.scale_out_percent and not extended:
            return None
        return exit_signal(
            ctx,
            ctx.settings.scale_out_fraction,
            confidence=0.85,
            reason=f"Scale-out: gain {gain:.2f}% from entry, RSI {rsi:.1f}",
        )

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        prices = ctx.prices
        rsi = analyzer.rsi(prices, 14)
        mom = analyzer.momentum(prices, 10)
        macd = analyzer.macd(prices)
        bands = analyzer.bollinger_bands(prices, 20, 2.0)
        low, high = rsi_thresholds(ctx.volatility)

        summary = (
            f"RSI {rsi:.1f} (buy<{low:.1f} sell>{high:.1f}), momentum {mom:.2f}%, "
            f"MACD strength {macd.strength:.1f}, BB middle {bands.middle:.4f}, "
            f"vol {ctx.volatility * 100:.2f}%"
        )

        if rsi < low and mom > 0 and macd.strength > 10 and ctx.price < bands.middle:
            action = BUY
        elif rsi > high and mom < 0 and macd.strength < -10 and ctx.price > bands.middle:
            action = SELL
        else:
            return TradeSignal.hold(f"No momentum setup: {summary}", price=ctx.price)

        confidence = min(0.9, 0.6 + abs(macd.strength) / 100.0 * 0.2)
        targets = analyzer.adaptive_targets(ctx.price, ctx.volatility, action)
        return sized_signal(
            ctx,
            action,
            target_notional(ctx),
            confidence,
            reason=f"Momentum {action}: {summary}",
            take_profit=targets.take_profit,
            stop_loss=targets.stop_loss,
        )
