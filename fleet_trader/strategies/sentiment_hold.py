from __future__ import annotations

from typing import Optional

from fleet_trader.types import SentimentReading, TradeSignal
from .base import MarketContext, StrategyState


def conviction(reading: Optional[SentimentReading]) -> str:
    if reading is None:
        return "unknown"
    if reading.sentiment == "bullish" and reading.score >= 50:
        return "strong"
    if reading.sentiment == "bearish" and reading.score <= -50:
        return "shaken"
    return "steady"


class SentimentHoldStrategy:
    name = "sentiment_hold"
    protective_targets = False

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        return None

    def _refresh(self, ctx: MarketContext, state: StrategyState) -> None:
        if ctx.sentiment is None:
            return
        checked = state.sentiment_checked_at
        if checked is not None:
            elapsed = (ctx.timestamp - checked).total_seconds()
            if elapsed < ctx.settings.sentiment_refresh_seconds:
                return
        state.sentiment = ctx.sentiment
        state.sentiment_checked_at = ctx.timestamp

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        self._refresh(ctx, state)
        reading = state.sentiment
        score = max(-100.0, min(100.0, reading.score)) if reading else 0.0
        confidence = 0.5 + score / 200.0
        mood = f"{reading.sentiment} ({score:+.0f})" if reading else "n/a"

        if ctx.position is None:
            return TradeSignal.hold(
                f"Entry already taken, buy-and-hold does not re-enter; sentiment {mood}",
                price=ctx.price,
                confidence=confidence,
            )

        entry = state.entry_price or ctx.position.entry_price
        return TradeSignal.hold(
            f"Holding {ctx.position.quantity:g} since {entry:.4f}; sentiment {mood}, "
            f"conviction {conviction(reading)}",
            price=ctx.price,
            confidence=confidence,
        )
