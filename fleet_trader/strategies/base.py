from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import math
from typing import Deque, List, Optional, Protocol, Sequence

from fleet_trader.errors import ComputationError, CoreError, InsufficientHistory, InvalidInput, RiskRejected
from fleet_trader.market import analyzer
from fleet_trader.market.history import PriceHistory
from fleet_trader.risk.manager import RiskManager
from fleet_trader.types import (
    BUY,
    LONG,
    SELL,
    AccountSnapshot,
    AgentParameters,
    OrderBookSnapshot,
    Position,
    SentimentReading,
    Trade,
    TradeSignal,
)
from fleet_trader.utils.logging import get_logger
from .settings import StrategySettings

NO_POSITION = "NO_POSITION"
INITIAL_ENTRY = "INITIAL_ENTRY"
HOLDING = "HOLDING"
SCALING_OUT = "SCALING_OUT"

ONE_DAY = timedelta(days=1)

logger = get_logger(__name__)


@dataclass
class StrategyState:
    phase: str = NO_POSITION
    entry_price: Optional[float] = None
    entry_time: Optional[datetime] = None
    has_initial_entry: bool = False
    last_trade_at: Optional[datetime] = None
    peak_equity: float = 0.0
    trade_times: Deque[datetime] = field(default_factory=deque)
    results: Deque[float] = field(default_factory=lambda: deque(maxlen=100))
    grid_anchor: Optional[float] = None
    grid_level: int = 0
    sentiment: Optional[SentimentReading] = None
    sentiment_checked_at: Optional[datetime] = None

    def trades_since(self, cutoff: datetime) -> int:
        while self.trade_times and self.trade_times[0] < cutoff - ONE_DAY:
            self.trade_times.popleft()
        return sum(1 for ts in self.trade_times if ts >= cutoff)

    def mark_trade(self, timestamp: datetime) -> None:
        self.last_trade_at = timestamp
        self.trade_times.append(timestamp)

    def cooldown_remaining_ms(self, timestamp: datetime, interval_ms: int) -> float:
        if self.last_trade_at is None or interval_ms <= 0:
            return 0.0
        elapsed = (timestamp - self.last_trade_at).total_seconds() * 1000.0
        return max(0.0, interval_ms - elapsed)

    def win_rate(self) -> Optional[float]:
        if not self.results:
            return None
        wins = sum(1 for pnl in self.results if pnl > 0)
        return wins / len(self.results)

    def reset_position(self, rearm_initial_entry: bool) -> None:
        self.phase = NO_POSITION
        self.entry_price = None
        self.entry_time = None
        if rearm_initial_entry:
            self.has_initial_entry = False


@dataclass
class MarketContext:
    symbol: str
    price: float
    timestamp: datetime
    prices: List[float]
    equity: float
    position: Optional[Position]
    parameters: AgentParameters
    settings: StrategySettings
    risk: RiskManager
    volatility: float
    reference_price: Optional[float] = None
    order_book: Optional[OrderBookSnapshot] = None
    sentiment: Optional[SentimentReading] = None


class SignalVariant(Protocol):
    name: str
    protective_targets: bool

    def manage_position(self, ctx: MarketContext, state: StrategyState) -> Optional[TradeSignal]:
        ...

    def decide(self, ctx: MarketContext, state: StrategyState) -> TradeSignal:
        ...


def target_notional(ctx: MarketContext) -> float:
    notional = ctx.risk.calculate_position_size(
        ctx.equity, ctx.volatility, ctx.parameters.leverage, ctx.price
    )
    cap = ctx.equity * ctx.parameters.position_size * ctx.parameters.leverage
    return min(notional, cap)


def sized_signal(
    ctx: MarketContext,
    action: str,
    notional: float,
    confidence: float,
    reason: str,
    take_profit: Optional[float] = None,
    stop_loss: Optional[float] = None,
) -> TradeSignal:
    if not math.isfinite(notional) or notional <= 0:
        raise RiskRejected(f"Position size rejected (notional={notional})")
    quantity = math.floor(notional / ctx.price)
    if quantity <= 0:
        raise RiskRejected(
            f"Position size too small: {notional:.2f} notional at price {ctx.price:.4f}"
        )
    return quantity_signal(ctx, action, quantity, confidence, reason, take_profit, stop_loss)


def quantity_signal(
    ctx: MarketContext,
    action: str,
    quantity: int,
    confidence: float,
    reason: str,
    take_profit: Optional[float] = None,
    stop_loss: Optional[float] = None,
) -> TradeSignal:
    if quantity <= 0:
        raise RiskRejected(f"Quantity {quantity} rejected")
    if quantity * ctx.price < ctx.settings.min_order_notional:
        raise RiskRejected(
            f"Order notional {quantity * ctx.price:.2f} below minimum {ctx.settings.min_order_notional:.2f}"
        )
    return TradeSignal(
        action=action,
        quantity=quantity,
        price=ctx.price,
        take_profit=take_profit,
        stop_loss=stop_loss,
        confidence=min(max(confidence, 0.0), 1.0),
        reason=reason,
    )


def exit_signal(
    ctx: MarketContext,
    fraction: float,
    confidence: float,
    reason: str,
) -> TradeSignal:
    position = ctx.position
    if position is None:
        raise RiskRejected("No open position to reduce")
    quantity = math.floor(position.quantity * fraction)
    if quantity <= 0 and position.quantity >= 1:
        quantity = 1
    if quantity <= 0:
        raise RiskRejected(f"Position of {position.quantity} too small to reduce")
    return TradeSignal(
        action=SELL if position.side == LONG else BUY,
        quantity=quantity,
        price=ctx.price,
        confidence=min(max(confidence, 0.0), 1.0),
        reason=reason,
    )


def gain_percent(ctx: MarketContext, entry_price: Optional[float]) -> float:
    if not entry_price or ctx.position is None:
        return 0.0
    change = (ctx.price - entry_price) / entry_price * 100.0
    return change if ctx.position.side == LONG else -change


def _positive(value: object, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {label}: {value!r}") from None
    if not math.isfinite(number) or number <= 0:
        raise InvalidInput(f"Invalid {label}: {number}")
    return number


def _open_position(positions: Sequence[Position], symbol: str) -> Optional[Position]:
    for position in positions:
        if position.symbol == symbol and position.is_open:
            return position
    return None


class StrategyEngine:
    def __init__(
        self,
        agent_id: str,
        symbol: str,
        variant: SignalVariant,
        parameters: AgentParameters,
        settings: StrategySettings,
        risk: RiskManager | None = None,
        state: StrategyState | None = None,
    ) -> None:
        self.agent_id = agent_id
        self.symbol = symbol
        self.variant = variant
        self.parameters = parameters
        self.settings = settings
        self.risk = risk or RiskManager(settings.limits)
        self.state = state or StrategyState()
        self.history = PriceHistory(settings.history_capacity)
        self.logger = logger.bind(agent_id=agent_id, strategy=variant.name, symbol=symbol)

    @property
    def name(self) -> str:
        return self.variant.name

    def update_parameters(self, parameters: AgentParameters) -> None:
        self.parameters = parameters

    def record_trade(self, trade: Trade) -> None:
        self.state.results.append(trade.pnl)

    def generate_signal(
        self,
        current_price: float,
        account: AccountSnapshot,
        positions: Optional[Sequence[Position]] = None,
        timestamp: Optional[datetime] = None,
        reference_price: Optional[float] = None,
        order_book: Optional[OrderBookSnapshot] = None,
        sentiment: Optional[SentimentReading] = None,
    ) -> TradeSignal:
        ts = timestamp or datetime.now(timezone.utc)
        try:
            signal = self._evaluate(
                current_price,
                account,
                positions,
                ts,
                reference_price,
                order_book,
                sentiment,
            )
        except CoreError as exc:
            self.logger.debug("signal_rejected", kind=exc.kind, reason=str(exc))
            signal = TradeSignal.hold(str(exc), price=_safe_price(current_price))
        except Exception as exc:
            error = ComputationError(f"{type(exc).__name__}: {exc}")
            self.logger.error("strategy_error", kind=error.kind, error=str(error))
            signal = TradeSignal.hold(f"Strategy error: {error}", price=_safe_price(current_price))

        if signal.is_trade:
            self.state.mark_trade(ts)
            self.logger.info(
                "signal_generated",
                action=signal.action,
                quantity=signal.quantity,
                price=signal.price,
                confidence=round(signal.confidence, 3),
                phase=self.state.phase,
                reason=signal.reason,
            )
        return signal

    def _sync_phase(self, position: Optional[Position], price: float, ts: datetime) -> None:
        state = self.state
        if position is None:
            if state.phase != NO_POSITION:
                state.reset_position(self.settings.rearm_initial_entry)
            return
        if state.phase == NO_POSITION:
            state.has_initial_entry = True
            state.entry_time = state.entry_time or ts
        if state.phase != HOLDING:
            state.phase = HOLDING
        if position.entry_price > 0:
            state.entry_price = position.entry_price
        elif state.entry_price is None:
            state.entry_price = price

    def _evaluate(
        self,
        current_price: float,
        account: AccountSnapshot,
        positions: Optional[Sequence[Position]],
        ts: datetime,
        reference_price: Optional[float],
        order_book: Optional[OrderBookSnapshot],
        sentiment: Optional[SentimentReading],
    ) -> TradeSignal:
        price = _positive(current_price, "price")
        equity = _positive(getattr(account, "equity", None), "equity")
        if positions is None:
            positions = account.positions
        state = self.state
        settings = self.settings

        self.history.push(price, ts)
        state.peak_equity = max(state.peak_equity, equity)
        position = _open_position(positions, self.symbol)
        self._sync_phase(position, price, ts)

        remaining = state.cooldown_remaining_ms(ts, settings.min_trade_interval_ms)
        if remaining > 0:
            return TradeSignal.hold(
                f"Rate limited: next trade allowed in {remaining / 1000.0:.1f}s",
                price=price,
            )

        prices = self.history.as_sequence()
        ctx = MarketContext(
            symbol=self.symbol,
            price=price,
            timestamp=ts,
            prices=prices,
            equity=equity,
            position=position,
            parameters=self.parameters,
            settings=settings,
            risk=self.risk,
            volatility=analyzer.volatility(prices, 20),
            reference_price=reference_price,
            order_book=order_book,
            sentiment=sentiment,
        )

        # Exits run once the entry warm-up is met, ahead of every entry guard.
        if position is not None and len(prices) >= settings.initial_entry_ticks:
            managed = self.variant.manage_position(ctx, state)
            if managed is not None:
                if managed.quantity < position.quantity:
                    state.phase = SCALING_OUT
                return managed

        breaker = self.risk.check_circuit_breaker(equity, state.peak_equity)
        if breaker.should_stop:
            raise RiskRejected(f"Circuit breaker: {breaker.reason}")

        if position is None and settings.initial_entry and not state.has_initial_entry:
            if len(prices) < settings.initial_entry_ticks:
                raise InsufficientHistory(
                    f"Building history ({len(prices)}/{settings.initial_entry_ticks}) before initial entry"
                )
            return self._initial_entry(ctx)

        allowed, limit_reason = self.risk.check_trade_limit(state.trades_since(ts - ONE_DAY))
        if not allowed:
            raise RiskRejected(limit_reason)

        if len(prices) < settings.min_history:
            raise InsufficientHistory(f"Building history ({len(prices)}/{settings.min_history})")

        if position is None:
            win_rate = state.win_rate()
            if len(state.results) >= 10 and win_rate is not None and not self.risk.is_win_rate_acceptable(win_rate):
                raise RiskRejected(
                    f"Win rate {win_rate:.0%} below minimum {self.risk.limits.min_win_rate:.0%}"
                )

        signal = self.variant.decide(ctx, state)
        if signal.is_trade and position is None:
            state.phase = HOLDING
            state.entry_price = price
            state.entry_time = ts
        return signal

    def _initial_entry(self, ctx: MarketContext) -> TradeSignal:
        capped = min(ctx.equity * ctx.parameters.position_size, target_notional(ctx))
        take_profit = stop_loss = None
        if self.variant.protective_targets:
            take_profit = ctx.price * (1 + ctx.parameters.take_profit_percent / 100.0)
            stop_loss = ctx.price * (1 - ctx.parameters.stop_loss_percent / 100.0)
        signal = sized_signal(
            ctx,
            BUY,
            capped,
            confidence=0.75,
            reason=f"Initial entry: {capped:.2f} notional at {ctx.price:.4f}",
            take_profit=take_profit,
            stop_loss=stop_loss,
        )
        self.state.has_initial_entry = True
        self.state.phase = INITIAL_ENTRY
        self.state.entry_price = ctx.price
        self.state.entry_time = ctx.timestamp
        return signal


def _safe_price(value: object) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) and number > 0 else 0.0
