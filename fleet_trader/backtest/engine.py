from __future__ import annotations

from dataclasses import asdict, dataclass
import json
from pathlib import Path
from typing import Dict, List

import pandas as pd
from tqdm import tqdm

from fleet_trader.learning.performance import analyze_performance
from fleet_trader.risk.metrics import metrics_from_account_values
from fleet_trader.strategies.base import StrategyEngine
from fleet_trader.utils.logging import get_logger
from .broker import SimBroker
from .feed import ReplayFeed

logger = get_logger(__name__)


@dataclass
class BacktestResult:
    summary: Dict
    equity_curve: pd.DataFrame
    fills: pd.DataFrame
    trades: pd.DataFrame
    decisions: pd.DataFrame


class BacktestEngine:
    def __init__(
        self,
        strategy: StrategyEngine,
        feed: ReplayFeed,
        broker: SimBroker,
    ) -> None:
        self.strategy = strategy
        self.feed = feed
        self.broker = broker
        self.decision_log: List[Dict] = []

    def _log_decision(self, ts: pd.Timestamp, signal, filled: bool) -> None:
        self.decision_log.append(
            {
                "timestamp": ts,
                "symbol": self.feed.symbol,
                "action": signal.action,
                "quantity": signal.quantity,
                "price": signal.price,
                "confidence": signal.confidence,
                "take_profit": signal.take_profit,
                "stop_loss": signal.stop_loss,
                "filled": filled,
                "reason": signal.reason,
            }
        )

    def run(self) -> BacktestResult:
        timeline = self.feed.timeline
        if not timeline:
            raise ValueError("No price data available for replay.")

        symbol = self.feed.symbol
        progress = tqdm(
            enumerate(self.feed.ticks()),
            total=len(timeline),
            desc=f"Backtest {self.strategy.name}",
            unit="tick",
        )

        for step_idx, (ts, price, reference) in progress:
            moment = ts.to_pydatetime()
            self.broker.mark_to_market(moment, {symbol: price})
            account = self.broker.account_snapshot()
            signal = self.strategy.generate_signal(
                price,
                account,
                timestamp=moment,
                reference_price=reference,
            )
            fill, closed = self.broker.execute(moment, symbol, signal, price)
            for trade in closed:
                self.strategy.record_trade(trade)
            if signal.is_trade or step_idx % 25 == 0:
                self._log_decision(ts, signal, fill is not None)
            if step_idx % 25 == 0 and self.broker.equity_curve:
                progress.set_postfix(
                    {
                        "equity": f"{self.broker.equity_curve[-1]['equity']:.0f}",
                        "fills": len(self.broker.fills),
                        "trades": len(self.broker.trades),
                        "phase": self.strategy.state.phase,
                    }
                )

        progress.close()
        self.broker.mark_to_market(timeline[-1].to_pydatetime(), {symbol: self.feed.prices["price"].iloc[-1]})

        equity_curve = pd.DataFrame(self.broker.equity_curve)
        fills = pd.DataFrame(self.broker.fills_as_records())
        trades = pd.DataFrame(self.broker.trades_as_records())
        decisions = pd.DataFrame(self.decision_log)

        risk = metrics_from_account_values(
            zip(equity_curve["timestamp"], equity_curve["equity"]),
            self.broker.starting_cash,
        )
        performance = analyze_performance(self.broker.trades)
        summary = {
            "strategy": self.strategy.name,
            "agent_id": self.strategy.agent_id,
            "symbol": symbol,
            "start": str(timeline[0]),
            "end": str(timeline[-1]),
            "ticks": len(timeline),
            "final_equity": float(equity_curve["equity"].iloc[-1]),
            "cash": float(self.broker.cash),
            "fills": len(self.broker.fills),
            **asdict(risk),
            **{f"trades_{key}": value for key, value in asdict(performance).items()},
        }
        logger.info(
            "backtest_complete",
            strategy=self.strategy.name,
            symbol=symbol,
            final_equity=round(summary["final_equity"], 2),
            trades=len(self.broker.trades),
        )
        return BacktestResult(
            summary=summary,
            equity_curve=equity_curve,
            fills=fills,
            trades=trades,
            decisions=decisions,
        )

    @staticmethod
    def save(result: BacktestResult, output_dir: Path, run_name: str) -> Dict[str, Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        safe_name = "".join(ch if ch.isalnum() or ch in {"_", "-"} else "_" for ch in run_name)
        paths = {
            "summary": output_dir / f"{safe_name}_summary.json",
            "equity": output_dir / f"{safe_name}_equity.csv",
            "fills": output_dir / f"{safe_name}_fills.csv",
            "trades": output_dir / f"{safe_name}_trades.csv",
            "decisions": output_dir / f"{safe_name}_decisions.csv",
        }

        paths["summary"].write_text(json.dumps(result.summary, indent=2, default=str), encoding="utf-8")
        result.equity_curve.to_csv(paths["equity"], index=False)
        result.fills.to_csv(paths["fills"], index=False)
        result.trades.to_csv(paths["trades"], index=False)
        result.decisions.to_csv(paths["decisions"], index=False)
        return paths
