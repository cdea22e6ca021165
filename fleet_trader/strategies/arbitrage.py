from __future__ import annotations

import math
from typing import Optional

import numpy as np

from fleet_trader.market import analyzer
from fleet_trader.types import BUY, SELL, TradeSignal
from .base import MarketContext, StrategyState, exit_signal, gain_percent, sized_signal, target_notional

MIN_EMA_DISTANCE_PERCENT = 0.3


def reference_for(ctx: MarketContext) -> float:
    reference = ctx.reference_price
    if reference is not None and math.isfinite(reference) and reference > 0:
        return float(reference)
    return float(np.mean(ctx.prices))


class ArbitrageStrategy:
    name = "arbitrage"
    protective_targets = True

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        gain = gain_percent(ctx, state.entry_price)
        if gain <= -ctx.parameters.stop_loss_percent:
            return exit_signal(
                ctx,
                1.0,
                confidence=0.9,
                reason=f"Stop-loss: {gain:.2f}% against entry (limit {ctx.parameters.stop_loss_percent:.2f}%)",
            )
        threshold = ctx.settings.scale_out_percent
        if threshold is not None and gain >= threshold:
            return exit_signal(
                ctx,
                ctx.settings.scale_out_fraction,
                confidence=0.85,
                reason=f"Spread captured: {gain:.2f}% from entry",
            )
        return None

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        prices = ctx.prices
        price = ctx.price
        reference = reference_for(ctx)
        spread = abs(price - reference) / reference * 100.0
        ema20 = analyzer.ema(prices, 20)
        sma50 = analyzer.sma(prices, 50)
        rsi = analyzer.rsi(prices, 14)
        distance = abs(price - ema20) / ema20 * 100.0 if ema20 > 0 else 0.0
        min_spread = ctx.parameters.arbitrage_min_spread or 0.15

        summary = (
            f"spread {spread:.3f}% vs ref {reference:.4f} (min {min_spread:.2f}%), "
            f"EMA20 {ema20:.4f}, SMA50 {sma50:.4f}, RSI {rsi:.1f}, EMA distance {distance:.2f}%"
        )
        if spread <= min_spread or distance <= MIN_EMA_DISTANCE_PERCENT:
            return TradeSignal.hold(f"No arbitrage: {summary}", price=price)

        if price < reference and price < ema20 and price < sma50 and rsi < 30:
            action = BUY
        elif price > reference and price > ema20 and price > sma50 and rsi > 70:
            action = SELL
        else:
            return TradeSignal.hold(f"Spread without confirmation: {summary}", price=price)

        stop_fraction = ctx.parameters.stop_loss_percent / 100.0
        target_fraction = ctx.parameters.take_profit_percent / 100.0
        if action == BUY:
            take_profit = price * (1 + target_fraction)
            stop_loss = price * (1 - stop_fraction)
        else:
            take_profit = price * (1 - target_fraction)
            stop_loss = price * (1 + stop_fraction)

        return sized_signal(
            ctx,
            action,
            target_notional(ctx),
            confidence=min(0.9, 0.6 + spread * 0.1 + 0.15),
            reason=f"Arbitrage {action}: {summary}",
            take_profit=take_profit,
            stop_loss=stop_loss,
        )
