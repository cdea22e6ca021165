from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence

from fleet_trader.errors import RiskRejected
from fleet_trader.market import analyzer
from fleet_trader.market.analyzer import MACDResult, OrderBookStats
from fleet_trader.types import BUY, SELL, TradeSignal
from .base import MarketContext, StrategyState, exit_signal, gain_percent, sized_signal, target_notional

MAX_TARGET_FRACTION = 0.009
ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class Prediction:
    predicted_price: float
    confidence: float
    direction: str


def predict(
    prices: Sequence[float],
    volatility: float,
    rsi: float,
    macd: MACDResult,
    book: OrderBookStats | None = None,
) -> Prediction:
    current = float(prices[-1])
    predicted = current
    confidence = 0.5
    bullish = 0
    bearish = 0

    short_trend = analyzer.trend_slope(prices, 15)
    medium_trend = analyzer.trend_slope(prices, 50)

    if short_trend > 0.01:
        bullish += 1
        confidence += 0.1
    elif short_trend < -0.01:
        bearish += 1
        confidence += 0.1

    if medium_trend > 0 and short_trend > 0:
        bullish += 1
        confidence += 0.08
    elif medium_trend < 0 and short_trend < 0:
        bearish += 1
        confidence += 0.08

    if rsi < 30:
        bullish += 1
        confidence += 0.12
        predicted += current * 0.005
    elif rsi > 70:
        bearish += 1
        confidence += 0.12
        predicted -= current * 0.005

    if macd.strength > 20:
        bullish += 1
        confidence += 0.12
    elif macd.strength < -20:
        bearish += 1
        confidence += 0.12

    reversal = analyzer.detect_reversal(prices)
    trend = analyzer.detect_trend(prices)
    if reversal == "UP" and trend == "UP":
        bullish += 1
        confidence += 0.08
        predicted += current * 0.008
    elif reversal == "DOWN" and trend == "DOWN":
        bearish += 1
        confidence += 0.08
        predicted -= current * 0.008

    if book is not None and abs(book.imbalance) > 0.2:
        if book.imbalance > 0:
            bullish += 1
            predicted += current * 0.002
        else:
            bearish += 1
            predicted -= current * 0.002
        confidence += 0.05

    if volatility > 0.08:
        confidence *= 0.8
    elif volatility < 0.01:
        confidence *= 1.1

    if bullish + bearish > 0:
        confidence = min(confidence, 0.95)
    confidence = max(confidence, 0.4)
    direction = "UP" if bullish > bearish else "DOWN"
    return Prediction(predicted_price=predicted, confidence=confidence, direction=direction)


def dynamic_threshold(base: float, volatility: float, rsi: float) -> float:
    threshold = base
    if volatility > 0.05:
        threshold += 0.05
    elif volatility < 0.01:
        threshold -= 0.03
    if rsi < 25 or rsi > 75:
        threshold -= 0.05
    elif 40 < rsi < 60:
        threshold += 0.05
    return max(0.55, min(0.85, threshold))


class MLScalperStrategy:
    name = "ml_scalper"
    protective_targets = True

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        horizon = timedelta(minutes=ctx.parameters.prediction_timeframe or 5)
        if state.entry_time is not None and ctx.timestamp - state.entry_time >= horizon:
            return exit_signal(
                ctx,
                1.0,
                confidence=0.8,
                reason=f"Prediction horizon of {horizon} elapsed, closing position",
            )
        gain = gain_percent(ctx, state.entry_price)
        threshold = ctx.settings.scale_out_percent
        if threshold is not None and gain >= threshold:
            return exit_signal(
                ctx,
                ctx.settings.scale_out_fraction,
                confidence=0.9,
                reason=f"Scale-out: gain {gain:.2f}% from entry",
            )
        return None

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        cap = ctx.settings.max_trades_per_hour
        if cap is not None and state.trades_since(ctx.timestamp - ONE_HOUR) >= cap:
            raise RiskRejected(f"Hourly trade cap ({cap}) reached")

        prices = ctx.prices
        vol = ctx.volatility
        rsi = analyzer.rsi(prices, 14)
        macd = analyzer.macd(prices)
        book = analyzer.order_book_stats(ctx.order_book) if ctx.order_book is not None else None
        prediction = predict(prices, vol, rsi, macd, book)
        threshold = dynamic_threshold(ctx.parameters.ml_confidence_threshold or 0.65, vol, rsi)

        if prediction.confidence < threshold:
            return TradeSignal.hold(
                f"ML confidence {prediction.confidence:.1%} below dynamic threshold "
                f"{threshold:.1%} (vol {vol:.2%})",
                price=ctx.price,
            )

        change = (prediction.predicted_price - ctx.price) / ctx.price * 100.0
        movement = max(0.3, vol * 10.0)
        if change > movement and prediction.direction == "UP":
            action = BUY
        elif change < -movement and prediction.direction == "DOWN":
            action = SELL
        else:
            return TradeSignal.hold(
                f"Minimal movement ({change:.2f}%), threshold +/-{movement:.2f}%",
                price=ctx.price,
            )

        targets = analyzer.adaptive_targets(ctx.price, vol, action)
        target_distance = min(abs(targets.take_profit - ctx.price), ctx.price * MAX_TARGET_FRACTION)
        stop_distance = min(abs(ctx.price - targets.stop_loss), target_distance / 2.0)
        direction = 1.0 if action == BUY else -1.0
        take_profit = ctx.price + direction * target_distance
        stop_loss = ctx.price - direction * stop_distance

        notional = target_notional(ctx)
        assessment = ctx.risk.assess_position_risk(
            entry_price=ctx.price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            quantity=notional / ctx.price,
            equity=ctx.equity,
            leverage=ctx.parameters.leverage,
            volatility=vol,
        )
        if not assessment.acceptable:
            raise RiskRejected(f"Risk check failed: {assessment.assessment}")

        return sized_signal(
            ctx,
            action,
            notional,
            confidence=min(prediction.confidence, 0.95),
            reason=(
                f"ML: {change:.2f}% move expected (vol {vol:.2%}, RSI {rsi:.0f}, "
                f"MACD {macd.strength:.0f}, confidence {prediction.confidence:.2f})"
            ),
            take_profit=ctx.risk.apply_slippage(take_profit, action),
            stop_loss=ctx.risk.apply_slippage(stop_loss, action),
        )
