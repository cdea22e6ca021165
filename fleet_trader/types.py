from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, List, Optional, Tuple

BUY = "BUY"
SELL = "SELL"
HOLD = "HOLD"

LONG = "LONG"
SHORT = "SHORT"


@dataclass
class PricePoint:
    price: float
    timestamp: Optional[datetime] = None


@dataclass
class Position:
    symbol: str
    side: str = LONG
    quantity: float = 0.0
    entry_price: float = 0.0
    unrealized_pnl: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.quantity > 0


@dataclass(frozen=True)
class TradeSignal:
    action: str
    quantity: float
    price: float
    take_profit: Optional[float] = None
    stop_loss: Optional[float] = None
    confidence: float = 0.0
    reason: str = ""

    @classmethod
    def hold(cls, reason: str, price: float = 0.0, confidence: float = 0.0) -> "TradeSignal":
        return cls(action=HOLD, quantity=0, price=price, confidence=confidence, reason=reason)

    @property
    def is_trade(self) -> bool:
        return self.action in {BUY, SELL} and self.quantity > 0


@dataclass(frozen=True)
class AgentParameters:
    leverage: float
    position_size: float
    stop_loss_percent: float
    take_profit_percent: float
    momentum_threshold: Optional[float] = None
    breakout_sensitivity: Optional[float] = None
    grid_interval: Optional[float] = None
    grid_levels: Optional[int] = None
    ml_confidence_threshold: Optional[float] = None
    prediction_timeframe: Optional[int] = None
    arbitrage_min_spread: Optional[float] = None
    last_updated: Optional[datetime] = None
    optimization_score: float = 50.0

    def replace(self, **changes: Any) -> "AgentParameters":
        return replace(self, **changes)


@dataclass(frozen=True)
class Trade:
    symbol: str
    side: str
    entry_price: float
    exit_price: float
    quantity: float
    pnl: float
    roi: float
    entry_time: datetime
    exit_time: datetime


@dataclass
class PerformanceMetrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    return_on_risk: float = 0.0
    best_symbol: str = ""
    worst_symbol: str = ""


@dataclass
class EquitySnapshot:
    timestamp: datetime
    account_value: float
    total_pnl: float = 0.0
    return_percent: float = 0.0


@dataclass
class RiskMetrics:
    max_drawdown: float = 0.0
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    return_percent: float = 0.0
    days_active: float = 0.0


@dataclass(frozen=True)
class CircuitBreakerState:
    should_stop: bool
    reason: str = ""
    drawdown_percent: float = 0.0


@dataclass(frozen=True)
class LearningUpdate:
    agent_id: str
    old_parameters: AgentParameters
    new_parameters: AgentParameters
    performance_before: PerformanceMetrics
    reason: str
    confidence: float
    timestamp: datetime


@dataclass
class AccountSnapshot:
    equity: float
    positions: List[Position] = field(default_factory=list)


@dataclass
class SentimentReading:
    symbol: str
    sentiment: str = "neutral"
    score: float = 0.0


@dataclass
class OrderBookSnapshot:
    bids: List[Tuple[float, float]] = field(default_factory=list)
    asks: List[Tuple[float, float]] = field(default_factory=list)



@dataclass
class Fill:
    timestamp: datetime
    symbol: str
    side: str
    quantity: float
    price: float
    notional: float
    commission: float
    slippage_bps: float
    rationale: str = ""
