from __future__ import annotations

from typing import Dict, Type

from fleet_trader.config import AgentLoopConfig
from fleet_trader.types import AgentParameters
from .arbitrage import ArbitrageStrategy
from .base import StrategyEngine, StrategyState
from .grid import GridStrategy
from .ml_scalper import MLScalperStrategy
from .momentum import MomentumStrategy
from .sentiment_hold import SentimentHoldStrategy
from .settings import DEFAULT_PARAMETERS, STRATEGY_SETTINGS, StrategySettings, settings_for

VARIANTS: Dict[str, Type] = {
    ArbitrageStrategy.name: ArbitrageStrategy,
    MomentumStrategy.name: MomentumStrategy,
    GridStrategy.name: GridStrategy,
    MLScalperStrategy.name: MLScalperStrategy,
    SentimentHoldStrategy.name: SentimentHoldStrategy,
}


def build_strategy(
    kind: str,
    agent_id: str,
    symbol: str,
    parameters: AgentParameters | None = None,
    settings: StrategySettings | None = None,
    loop: AgentLoopConfig | None = None,
) -> StrategyEngine:
    if kind not in VARIANTS:
        raise ValueError(f"Unknown strategy: {kind}. Expected one of {sorted(VARIANTS)}")
    return StrategyEngine(
        agent_id=agent_id,
        symbol=symbol,
        variant=VARIANTS[kind](),
        parameters=parameters or DEFAULT_PARAMETERS[kind],
        settings=settings or settings_for(kind, loop),
    )


__all__ = [
    "DEFAULT_PARAMETERS",
    "STRATEGY_SETTINGS",
    "StrategyEngine",
    "StrategySettings",
    "StrategyState",
    "VARIANTS",
    "build_strategy",
]
