from __future__ import annotations

from datetime import datetime, timezone
import threading
from typing import Any, Callable, Optional, Tuple, Union

from fleet_trader.strategies.base import StrategyEngine
from fleet_trader.types import (
    AccountSnapshot,
    AgentParameters,
    OrderBookSnapshot,
    SentimentReading,
    TradeSignal,
)
from fleet_trader.utils.logging import get_logger

Tick = Union[float, Tuple[float, datetime]]
PriceFeed = Callable[[], Tick]
AccountFeed = Callable[[], AccountSnapshot]
SignalSink = Callable[[str, TradeSignal], None]

logger = get_logger(__name__)


class AgentRunner:
    def __init__(
        self,
        agent_id: str,
        strategy: StrategyEngine,
        price_feed: PriceFeed,
        account_feed: AccountFeed,
        signal_sink: SignalSink,
        interval_seconds: float = 15.0,
        stop_event: threading.Event | None = None,
        parameter_source: Optional[Callable[[], AgentParameters]] = None,
        sentiment_feed: Optional[Callable[[str], SentimentReading]] = None,
        reference_feed: Optional[Callable[[str], float]] = None,
        order_book_feed: Optional[Callable[[str], OrderBookSnapshot]] = None,
    ) -> None:
        self.agent_id = agent_id
        self.strategy = strategy
        self.price_feed = price_feed
        self.account_feed = account_feed
        self.signal_sink = signal_sink
        self.interval_seconds = float(interval_seconds)
        self.stop_event = stop_event or threading.Event()
        self.parameter_source = parameter_source
        self.sentiment_feed = sentiment_feed
        self.reference_feed = reference_feed
        self.order_book_feed = order_book_feed
        self.logger = logger.bind(agent_id=agent_id, strategy=strategy.name)

    def stop(self) -> None:
        self.stop_event.set()

    def _optional(self, label: str, feed: Optional[Callable[[str], Any]]) -> Any:
        if feed is None:
            return None
        try:
            return feed(self.strategy.symbol)
        except Exception as exc:
            self.logger.warning("optional_feed_failed", feed=label, error=str(exc))
            return None

    def run_cycle(self) -> TradeSignal:
        if self.parameter_source is not None:
            try:
                self.strategy.update_parameters(self.parameter_source())
            except Exception as exc:
                self.logger.warning("parameter_refresh_failed", error=str(exc))

        try:
            tick = self.price_feed()
            account = self.account_feed()
        except Exception as exc:
            self.logger.warning("feed_unavailable", error=str(exc))
            signal = TradeSignal.hold(f"Feed unavailable: {exc}")
        else:
            if isinstance(tick, tuple):
                price, timestamp = tick
            else:
                price, timestamp = tick, datetime.now(timezone.utc)
            signal = self.strategy.generate_signal(
                price,
                account,
                timestamp=timestamp,
                reference_price=self._optional("reference", self.reference_feed),
                order_book=self._optional("order_book", self.order_book_feed),
                sentiment=self._optional("sentiment", self.sentiment_feed),
            )

        self.signal_sink(self.agent_id, signal)
        return signal

    def run(self, max_cycles: Optional[int] = None) -> int:
        self.logger.info("runner_started", interval_seconds=self.interval_seconds)
        completed = 0
        while not self.stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as exc:
                self.logger.error("runner_cycle_failed", error=str(exc))
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            if self.stop_event.wait(self.interval_seconds):
                break
        self.logger.info("runner_stopped", cycles=completed)
        return completed
