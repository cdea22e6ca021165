from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from fleet_trader.strategies.settings import ML_SCALPER, MOMENTUM
from fleet_trader.types import AgentParameters, LearningUpdate, PerformanceMetrics, Trade
from fleet_trader.utils.logging import get_logger
from .performance import analyze_performance
from .store import ParameterStore

MIN_CLOSED_TRADES = 10

logger = get_logger(__name__)


@dataclass(frozen=True)
class ParameterAdjustment:
    changes: Dict[str, float]
    confidence: float
    reason: str


Rule = Callable[[PerformanceMetrics, AgentParameters], Optional[ParameterAdjustment]]


def raise_leverage_on_high_win_rate(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.win_rate <= 70:
        return None
    return ParameterAdjustment(
        {"leverage": min(params.leverage * 1.1, 5.0)},
        0.3,
        f"High win rate ({metrics.win_rate:.1f}%), increasing leverage.",
    )


def cut_leverage_on_low_win_rate(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.win_rate >= 40:
        return None
    return ParameterAdjustment(
        {"leverage": max(params.leverage * 0.8, 1.0)},
        0.4,
        f"Low win rate ({metrics.win_rate:.1f}%), decreasing leverage.",
    )


def tighten_stop_on_drawdown(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.max_drawdown <= 15:
        return None
    return ParameterAdjustment(
        {"stop_loss_percent": max(params.stop_loss_percent * 0.9, 0.3)},
        0.25,
        f"High max drawdown ({metrics.max_drawdown:.1f}%), tightening stops.",
    )


def widen_target_on_strong_profit_factor(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.profit_factor <= 2.5:
        return None
    return ParameterAdjustment(
        {"take_profit_percent": min(params.take_profit_percent * 1.15, 10.0)},
        0.2,
        f"Excellent profit factor ({metrics.profit_factor:.2f}), increasing take profit.",
    )


def narrow_target_on_weak_profit_factor(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.profit_factor >= 1.0:
        return None
    return ParameterAdjustment(
        {"take_profit_percent": max(params.take_profit_percent * 0.85, 0.5)},
        0.25,
        f"Poor profit factor ({metrics.profit_factor:.2f}), tightening take profit.",
    )


def grow_size_on_good_sharpe(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.sharpe_ratio <= 1:
        return None
    return ParameterAdjustment(
        {"position_size": min(params.position_size * 1.1, 1.0)},
        0.15,
        f"Good Sharpe ratio ({metrics.sharpe_ratio:.2f}), increasing position size.",
    )


def shrink_size_on_poor_sharpe(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.sharpe_ratio >= -0.5:
        return None
    return ParameterAdjustment(
        {"position_size": max(params.position_size * 0.8, 0.1)},
        0.2,
        f"Poor Sharpe ratio ({metrics.sharpe_ratio:.2f}), decreasing position size.",
    )


def focus_momentum_on_best_symbol(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if not metrics.best_symbol or params.momentum_threshold is None:
        return None
    return ParameterAdjustment(
        {"momentum_threshold": min(params.momentum_threshold * (1 + metrics.win_rate / 100.0), 100.0)},
        0.1,
        f"Focused on best symbol ({metrics.best_symbol}).",
    )


def relax_ml_threshold_on_profit(metrics: PerformanceMetrics, params: AgentParameters) -> Optional[ParameterAdjustment]:
    if metrics.profit_factor <= 1.5 or params.ml_confidence_threshold is None:
        return None
    return ParameterAdjustment(
        {"ml_confidence_threshold": max(params.ml_confidence_threshold * 0.95, 0.5)},
        0.15,
        "ML model improving, lowering confidence threshold.",
    )


# Applied in this order; later rules see earlier changes.
BASE_RULES: List[Rule] = [
    raise_leverage_on_high_win_rate,
    cut_leverage_on_low_win_rate,
    tighten_stop_on_drawdown,
    widen_target_on_strong_profit_factor,
    narrow_target_on_weak_profit_factor,
    grow_size_on_good_sharpe,
    shrink_size_on_poor_sharpe,
]

STRATEGY_RULES: Dict[str, List[Rule]] = {
    MOMENTUM: [focus_momentum_on_best_symbol],
    ML_SCALPER: [relax_ml_threshold_on_profit],
}


def rules_for(strategy: Optional[str]) -> List[Rule]:
    return BASE_RULES + STRATEGY_RULES.get(strategy or "", [])


def _round_optional(value: Optional[float], digits: int) -> Optional[float]:
    return None if value is None else round(value, digits)


def _rounded(params: AgentParameters) -> AgentParameters:
    return params.replace(
        leverage=round(params.leverage, 1),
        stop_loss_percent=round(params.stop_loss_percent, 2),
        take_profit_percent=round(params.take_profit_percent, 2),
        position_size=round(params.position_size, 2),
        momentum_threshold=_round_optional(params.momentum_threshold, 2),
        ml_confidence_threshold=_round_optional(params.ml_confidence_threshold, 3),
    )


def generate_learning_update(
    agent_id: str,
    params: AgentParameters,
    metrics: PerformanceMetrics,
    strategy: Optional[str] = None,
    min_trades: int = MIN_CLOSED_TRADES,
    now: Optional[datetime] = None,
) -> LearningUpdate:
    timestamp = now or datetime.now(timezone.utc)
    if metrics.total_trades < min_trades:
        return LearningUpdate(
            agent_id=agent_id,
            old_parameters=params,
            new_parameters=params,
            performance_before=metrics,
            reason=f"Insufficient closed trades ({metrics.total_trades}/{min_trades}), no change.",
            confidence=0.0,
            timestamp=timestamp,
        )

    updated = params
    confidence = 0.0
    reasons: List[str] = []
    for rule in rules_for(strategy):
        adjustment = rule(metrics, updated)
        if adjustment is None:
            continue
        updated = updated.replace(**adjustment.changes)
        confidence += adjustment.confidence
        reasons.append(adjustment.reason)

    score = min(params.optimization_score + math.floor(round(confidence * 30, 9)), 100)
    updated = _rounded(updated).replace(last_updated=timestamp, optimization_score=score)
    return LearningUpdate(
        agent_id=agent_id,
        old_parameters=params,
        new_parameters=updated,
        performance_before=metrics,
        reason=" ".join(reasons) or "No significant changes in performance.",
        confidence=round(confidence, 2),
        timestamp=timestamp,
    )


class LearningEngine:
    def __init__(self, store: ParameterStore, min_trades: int = MIN_CLOSED_TRADES) -> None:
        self.store = store
        self.min_trades = min_trades

    def run(self, agent_id: str, strategy: str, trades: Iterable[Trade]) -> LearningUpdate:
        closed: Sequence[Trade] = list(trades)
        metrics = analyze_performance(closed)
        current = self.store.get(agent_id, strategy)
        update = generate_learning_update(
            agent_id, current, metrics, strategy=strategy, min_trades=self.min_trades
        )
        if update.confidence > 0:
            self.store.put(agent_id, update.new_parameters)
        logger.info(
            "learning_update",
            agent_id=agent_id,
            strategy=strategy,
            trades=metrics.total_trades,
            win_rate=round(metrics.win_rate, 2),
            confidence=update.confidence,
            applied=update.confidence > 0,
            reason=update.reason,
        )
        return update
