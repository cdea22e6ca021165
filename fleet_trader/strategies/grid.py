from __future__ import annotations

import math
from typing import List, Optional

from fleet_trader.market import analyzer
from fleet_trader.types import BUY, LONG, SELL, TradeSignal
from .base import MarketContext, StrategyState, quantity_signal, sized_signal

EPSILON = 1e-9


def grid_prices(anchor: float, interval_percent: float, levels: int) -> List[float]:
    step = interval_percent / 100.0
    below = levels // 2
    above = levels - below
    return [anchor * (1 + i * step) for i in range(-below, above + 1) if i != 0]


class GridStrategy:
    name = "grid"
    protective_targets = False

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        return None

    def _anchor(self, state: StrategyState, price: float) -> None:
        state.grid_anchor = price
        state.grid_level = 0

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        interval = ctx.parameters.grid_interval or 2.0
        levels = max(int(ctx.parameters.grid_levels or 10), 2)
        price = ctx.price

        if state.grid_anchor is None:
            self._anchor(state, price)
            ladder = grid_prices(price, interval, levels)
            recent = analyzer.detect_levels(ctx.prices)
            return TradeSignal.hold(
                f"Grid anchored at {price:.4f}: {levels} levels every {interval:.2f}% "
                f"from {ladder[0]:.4f} to {ladder[-1]:.4f}, "
                f"recent range {recent.support:.4f}-{recent.resistance:.4f}",
                price=price,
            )

        step = interval / 100.0
        ratio = (price / state.grid_anchor - 1.0) / step
        below = levels // 2
        above = levels - below
        if ratio < -below - EPSILON or ratio > above + EPSILON:
            previous = state.grid_anchor
            self._anchor(state, price)
            return TradeSignal.hold(
                f"Price {price:.4f} left grid around {previous:.4f}, re-anchored",
                price=price,
            )

        up_level = math.floor(ratio + EPSILON)
        down_level = math.ceil(ratio - EPSILON)
        if up_level > state.grid_level:
            level, action = up_level, SELL
        elif down_level < state.grid_level:
            level, action = down_level, BUY
        else:
            return TradeSignal.hold(
                f"Between grid levels (level {state.grid_level}, ratio {ratio:.2f})",
                price=price,
            )

        state.grid_level = level
        level_price = state.grid_anchor * (1 + level * step)
        notional = ctx.risk.calculate_position_size(
            ctx.equity, ctx.volatility, ctx.parameters.leverage, price
        )
        per_level = notional / levels
        reason = f"Grid level {level:+d} crossed at {level_price:.4f} ({action})"

        if action == SELL:
            position = ctx.position
            if position is None or position.side != LONG:
                return TradeSignal.hold(f"{reason}, no inventory to sell", price=price)
            quantity = min(math.floor(per_level / price), math.floor(position.quantity))
            return quantity_signal(ctx, SELL, quantity, confidence=0.7, reason=reason)

        return sized_signal(ctx, BUY, per_level, confidence=0.7, reason=reason)
