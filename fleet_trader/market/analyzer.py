from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from fleet_trader.types import BUY, OrderBookSnapshot


@dataclass(frozen=True)
class MACDResult:
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0
    strength: float = 0.0


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    width: float = 0.0


@dataclass(frozen=True)
class TargetLevels:
    take_profit: float
    stop_loss: float
    risk_amount: float


@dataclass(frozen=True)
class PriceLevels:
    support: float
    resistance: float


@dataclass(frozen=True)
class OrderBookStats:
    imbalance: float = 0.0
    spread_percent: float = 0.0


def _as_array(prices: Sequence[float]) -> np.ndarray:
    return np.asarray(list(prices), dtype=float)


def sma(prices: Sequence[float], period: int) -> float:
    arr = _as_array(prices)
    if arr.size == 0:
        return 0.0
    if period <= 0 or arr.size < period:
        return float(arr[-1])
    return float(arr[-period:].mean())


def ema(prices: Sequence[float], period: int) -> float:
    arr = _as_array(prices)
    if arr.size == 0:
        return 0.0
    return float(pd.Series(arr).ewm(span=max(period, 1), adjust=False).mean().iloc[-1])


def volatility(prices: Sequence[float], lookback: int = 20) -> float:
    arr = _as_array(prices)[-lookback:]
    if arr.size < 3:
        return 0.0
    returns = np.diff(arr) / arr[:-1]
    return float(np.std(returns))


def rsi(prices: Sequence[float], period: int = 14) -> float:
    arr = _as_array(prices)
    if period <= 0 or arr.size < period + 1:
        return 50.0

    deltas = np.diff(arr)
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    arr = _as_array(prices)
    if arr.size < slow:
        return MACDResult()

    series = pd.Series(arr)
    macd_line = (
        series.ewm(span=fast, adjust=False).mean()
        - series.ewm(span=slow, adjust=False).mean()
    )
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    histogram = float(macd_line.iloc[-1] - signal_line.iloc[-1])
    # histogram in basis points of price
    strength = float(np.clip(histogram / arr[-1] * 10_000.0, -100.0, 100.0))
    return MACDResult(
        macd=float(macd_line.iloc[-1]),
        signal=float(signal_line.iloc[-1]),
        histogram=histogram,
        strength=strength,
    )


def bollinger_bands(prices: Sequence[float], period: int = 20, k: float = 2.0) -> BollingerBands:
    arr = _as_array(prices)
    if arr.size == 0:
        return BollingerBands(upper=0.0, middle=0.0, lower=0.0)
    if arr.size < period:
        last = float(arr[-1])
        return BollingerBands(upper=last, middle=last, lower=last)

    window = arr[-period:]
    middle = float(window.mean())
    std = float(window.std())
    upper = middle + k * std
    lower = middle - k * std
    width = (upper - lower) / middle if middle else 0.0
    return BollingerBands(upper=upper, middle=middle, lower=lower, width=width)


def momentum(prices: Sequence[float], lookback: int = 10) -> float:
    arr = _as_array(prices)
    if arr.size < lookback + 1:
        return 0.0
    past = float(arr[-lookback - 1])
    if past <= 0:
        return 0.0
    return (float(arr[-1]) - past) / past * 100.0


def adaptive_targets(
    price: float,
    vol: float,
    side: str,
    atr: Optional[float] = None,
) -> TargetLevels:
    risk = atr if atr else price * vol
    multiplier = float(np.clip(1.0 + vol * 5.0, 1.0, 3.0))
    if side == BUY:
        return TargetLevels(
            take_profit=price + risk * multiplier,
            stop_loss=price - risk * 0.5,
            risk_amount=risk,
        )
    return TargetLevels(
        take_profit=price - risk * multiplier,
        stop_loss=price + risk * 0.5,
        risk_amount=risk,
    )


def detect_levels(prices: Sequence[float], window: int = 20) -> PriceLevels:
    arr = _as_array(prices)[-window * 3:]
    if arr.size == 0:
        return PriceLevels(support=0.0, resistance=0.0)
    return PriceLevels(support=float(arr.min()), resistance=float(arr.max()))


def trend_slope(prices: Sequence[float], window: Optional[int] = None) -> float:
    arr = _as_array(prices)
    if window is not None:
        arr = arr[-window:]
    if arr.size < 2 or arr[-1] <= 0:
        return 0.0
    x = np.arange(arr.size, dtype=float)
    slope = np.polyfit(x, arr, 1)[0]
    return float(slope / arr[-1])


def detect_reversal(prices: Sequence[float]) -> str:
    arr = _as_array(prices)
    if arr.size < 5:
        return "NONE"
    last5 = arr[-5:]
    valley = last5[1] < last5[0] and last5[2] < last5[1] and last5[3] > last5[2]
    if valley and last5[3] > last5[2] * 1.005:
        return "UP"
    peak = last5[1] > last5[0] and last5[2] > last5[1] and last5[3] < last5[2]
    if peak and last5[3] < last5[2] * 0.995:
        return "DOWN"
    return "NONE"


def detect_trend(prices: Sequence[float], window: int = 8) -> str:
    arr = _as_array(prices)
    if arr.size < window:
        return "FLAT"
    moves = np.diff(arr[-window:])
    threshold = window * 0.6
    if int((moves > 0).sum()) >= threshold:
        return "UP"
    if int((moves < 0).sum()) >= threshold:
        return "DOWN"
    return "FLAT"


def order_book_stats(book: Optional[OrderBookSnapshot], depth: int = 10) -> OrderBookStats:
    if book is None or not book.bids or not book.asks:
        return OrderBookStats()
    bid_volume = float(sum(size for _, size in book.bids[:depth]))
    ask_volume = float(sum(size for _, size in book.asks[:depth]))
    total = bid_volume + ask_volume
    imbalance = (bid_volume - ask_volume) / total if total > 0 else 0.0
    best_bid = float(book.bids[0][0])
    best_ask = float(book.asks[0][0])
    mid = (best_bid + best_ask) / 2.0
    spread_percent = (best_ask - best_bid) / mid * 100.0 if mid > 0 else 0.0
    return OrderBookStats(imbalance=imbalance, spread_percent=spread_percent)
