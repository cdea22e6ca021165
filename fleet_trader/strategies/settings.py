from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional

from fleet_trader.config import AgentLoopConfig
from fleet_trader.risk.manager import RiskLimits
from fleet_trader.types import AgentParameters

ARBITRAGE = "arbitrage"
MOMENTUM = "momentum"
GRID = "grid"
ML_SCALPER = "ml_scalper"
SENTIMENT_HOLD = "sentiment_hold"


@dataclass(frozen=True)
class StrategySettings:
    limits: RiskLimits
    min_trade_interval_ms: int
    min_history: int
    scale_out_percent: Optional[float] = None
    scale_out_fraction: float = 0.5
    initial_entry: bool = True
    rearm_initial_entry: bool = True
    initial_entry_ticks: int = 5
    min_order_notional: float = 5.0
    history_capacity: int = 100
    max_trades_per_hour: Optional[int] = None
    sentiment_refresh_seconds: float = 300.0


STRATEGY_SETTINGS: Dict[str, StrategySettings] = {
    ARBITRAGE: StrategySettings(
        limits=RiskLimits(
            max_drawdown_percent=15,
            max_position_size_percent=12,
            max_daily_trades=25,
            min_win_rate=0.5,
            slippage_percent=0.25,
        ),
        min_trade_interval_ms=45_000,
        min_history=50,
        scale_out_percent=0.8,
    ),
    MOMENTUM: StrategySettings(
        limits=RiskLimits(
            max_drawdown_percent=14,
            max_position_size_percent=12,
            max_daily_trades=28,
            min_win_rate=0.48,
            slippage_percent=0.2,
        ),
        min_trade_interval_ms=15_000,
        min_history=26,
        scale_out_percent=2.0,
    ),
    GRID: StrategySettings(
        limits=RiskLimits(
            max_drawdown_percent=16,
            max_position_size_percent=15,
            max_daily_trades=50,
            min_win_rate=0.52,
            slippage_percent=0.15,
        ),
        min_trade_interval_ms=60_000,
        min_history=5,
    ),
    ML_SCALPER: StrategySettings(
        limits=RiskLimits(
            max_drawdown_percent=12,
            max_position_size_percent=15,
            max_daily_trades=30,
            min_win_rate=0.45,
            slippage_percent=0.2,
        ),
        min_trade_interval_ms=10_000,
        min_history=26,
        scale_out_percent=1.5,
        max_trades_per_hour=10,
    ),
    SENTIMENT_HOLD: StrategySettings(
        limits=RiskLimits(
            max_drawdown_percent=50,
            max_position_size_percent=10,
            max_daily_trades=5,
            min_win_rate=0.0,
            slippage_percent=0.1,
        ),
        min_trade_interval_ms=0,
        min_history=5,
        rearm_initial_entry=False,
    ),
}


DEFAULT_PARAMETERS: Dict[str, AgentParameters] = {
    ARBITRAGE: AgentParameters(
        leverage=2,
        stop_loss_percent=1,
        take_profit_percent=0.5,
        position_size=0.5,
        arbitrage_min_spread=0.1,
    ),
    MOMENTUM: AgentParameters(
        leverage=3,
        stop_loss_percent=2,
        take_profit_percent=3,
        position_size=0.3,
        momentum_threshold=70,
        breakout_sensitivity=75,
    ),
    GRID: AgentParameters(
        leverage=1.5,
        stop_loss_percent=3,
        take_profit_percent=2,
        position_size=0.4,
        grid_interval=2,
        grid_levels=10,
    ),
    ML_SCALPER: AgentParameters(
        leverage=2,
        stop_loss_percent=0.8,
        take_profit_percent=1,
        position_size=0.2,
        ml_confidence_threshold=0.7,
        prediction_timeframe=5,
    ),
    SENTIMENT_HOLD: AgentParameters(
        leverage=1,
        stop_loss_percent=5,
        take_profit_percent=10,
        position_size=0.1,
    ),
}


def settings_for(kind: str, loop: AgentLoopConfig | None = None) -> StrategySettings:
    if kind not in STRATEGY_SETTINGS:
        raise ValueError(f"Unknown strategy: {kind}")
    settings = STRATEGY_SETTINGS[kind]
    if loop is None:
        return settings
    return replace(
        settings,
        history_capacity=loop.history_capacity,
        initial_entry_ticks=loop.min_history_ticks,
        min_order_notional=loop.min_order_notional,
    )
