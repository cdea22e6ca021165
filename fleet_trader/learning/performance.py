from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

import numpy as np

from fleet_trader.types import PerformanceMetrics, Trade

PROFIT_FACTOR_CAP = 999.0


def _symbol_win_rates(trades: List[Trade]) -> Dict[str, float]:
    tally: Dict[str, List[int]] = {}
    for trade in trades:
        wins, total = tally.get(trade.symbol, [0, 0])
        tally[trade.symbol] = [wins + (1 if trade.pnl > 0 else 0), total + 1]
    return {symbol: wins / total * 100.0 for symbol, (wins, total) in tally.items()}


def _best_and_worst(rates: Dict[str, float]) -> Tuple[str, str]:
    if not rates:
        return "", ""
    return max(rates, key=rates.__getitem__), min(rates, key=rates.__getitem__)


def _max_drawdown(pnls: np.ndarray) -> float:
    max_dd = 0.0
    running_peak = 0.0
    for pnl in pnls:
        running_peak = max(running_peak, float(pnl))
        if running_peak <= 0:
            continue
        max_dd = max(max_dd, (running_peak - pnl) / running_peak * 100.0)
    return float(max_dd)


def analyze_performance(trades: Iterable[Trade]) -> PerformanceMetrics:
    closed = sorted(trades, key=lambda trade: trade.exit_time)
    if not closed:
        return PerformanceMetrics()

    pnls = np.array([trade.pnl for trade in closed], dtype=float)
    wins = pnls[pnls > 0]
    losses = pnls[pnls < 0]
    avg_win = float(wins.mean()) if wins.size else 0.0
    avg_loss = float(abs(losses.mean())) if losses.size else 0.0

    if avg_loss > 0:
        profit_factor = avg_win / avg_loss
    elif avg_win > 0:
        profit_factor = PROFIT_FACTOR_CAP
    else:
        profit_factor = 0.0

    returns = np.array([trade.roi / 100.0 for trade in closed], dtype=float)
    std = float(returns.std())
    sharpe = float(returns.mean() / std) if std > 0 else 0.0

    best, worst = _best_and_worst(_symbol_win_rates(closed))
    return PerformanceMetrics(
        total_trades=len(closed),
        winning_trades=int(wins.size),
        losing_trades=int(losses.size),
        win_rate=wins.size / len(closed) * 100.0,
        avg_win=avg_win,
        avg_loss=avg_loss,
        profit_factor=profit_factor,
        sharpe_ratio=sharpe,
        max_drawdown=_max_drawdown(pnls),
        return_on_risk=avg_win / avg_loss if avg_loss > 0 else 0.0,
        best_symbol=best,
        worst_symbol=worst,
    )


def calculate_optimization_score(metrics: PerformanceMetrics) -> float:
    score = 50.0

    if metrics.win_rate >= 60:
        score += 15
    elif metrics.win_rate >= 50:
        score += 10
    elif metrics.win_rate >= 40:
        score += 5

    if metrics.profit_factor >= 2:
        score += 15
    elif metrics.profit_factor >= 1.5:
        score += 10
    elif metrics.profit_factor >= 1:
        score += 5

    if metrics.sharpe_ratio >= 1:
        score += 15
    elif metrics.sharpe_ratio >= 0.5:
        score += 10
    elif metrics.sharpe_ratio >= 0:
        score += 5

    if metrics.max_drawdown > 30:
        score -= 20
    elif metrics.max_drawdown > 20:
        score -= 10
    elif metrics.max_drawdown > 10:
        score -= 5

    return max(min(score, 100.0), 0.0)
