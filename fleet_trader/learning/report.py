from __future__ import annotations

from typing import Dict

from fleet_trader.types import AgentParameters

COMPARED_FIELDS = ("leverage", "stop_loss_percent", "take_profit_percent", "position_size")


def format_parameters(params: AgentParameters) -> str:
    parts = [
        f"Leverage: {params.leverage:g}x",
        f"SL: {params.stop_loss_percent:g}%",
        f"TP: {params.take_profit_percent:g}%",
        f"Position: {params.position_size * 100:g}%",
    ]
    if params.momentum_threshold is not None:
        parts.append(f"Momentum: {params.momentum_threshold:g}")
    if params.grid_interval is not None:
        parts.append(f"Grid: {params.grid_interval:g}%")
    if params.ml_confidence_threshold is not None:
        parts.append(f"ML Confidence: {params.ml_confidence_threshold * 100:.0f}%")
    return " | ".join(parts)


def compare_parameters(old: AgentParameters, new: AgentParameters) -> Dict[str, Dict]:
    changes: Dict[str, Dict] = {}
    for name in COMPARED_FIELDS:
        before = getattr(old, name)
        after = getattr(new, name)
        if before == after:
            continue
        change = f"{(after / before - 1) * 100:.1f}%" if before else "n/a"
        changes[name] = {"old": before, "new": after, "change": change}
    return changes


def estimate_performance_improvement(
    old: AgentParameters,
    new: AgentParameters,
    current_win_rate: float,
) -> float:
    improvement = 0.0
    if new.leverage > old.leverage:
        improvement += (new.leverage - old.leverage) * (5 if current_win_rate > 60 else 2)
    elif new.leverage < old.leverage:
        improvement -= (old.leverage - new.leverage) * 3
    if new.stop_loss_percent < old.stop_loss_percent:
        improvement += (old.stop_loss_percent - new.stop_loss_percent) * 5
    if new.position_size > old.position_size:
        improvement += (new.position_size - old.position_size) * 100 * (2 if current_win_rate > 50 else 1)
    return round(improvement, 2)
