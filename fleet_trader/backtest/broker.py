from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from fleet_trader.types import BUY, LONG, SHORT, AccountSnapshot, Fill, Position, Trade, TradeSignal


class SimBroker:
    def __init__(
        self,
        starting_cash: float,
        commission_bps: float,
        slippage_bps: float,
    ) -> None:
        self.starting_cash = float(starting_cash)
        self.cash = float(starting_cash)
        self.commission_bps = float(commission_bps)
        self.slippage_bps = float(slippage_bps)
        self.positions: Dict[str, Position] = {}
        self.opened_at: Dict[str, datetime] = {}
        self.last_prices: Dict[str, float] = {}
        self.fills: List[Fill] = []
        self.trades: List[Trade] = []
        self.realized_pnl = 0.0
        self.equity_curve: List[Dict] = []

    def _slipped_price(self, side: str, price: float) -> float:
        bps = self.slippage_bps / 10_000.0
        if side == BUY:
            return price * (1.0 + bps)
        return price * (1.0 - bps)

    def _commission(self, notional: float) -> float:
        return abs(notional) * self.commission_bps / 10_000.0

    def _signed_quantity(self, symbol: str) -> float:
        position = self.positions.get(symbol)
        if position is None:
            return 0.0
        return position.quantity if position.side == LONG else -position.quantity

    def _close(
        self,
        timestamp: datetime,
        symbol: str,
        quantity: float,
        fill_price: float,
        commission: float,
    ) -> Trade:
        position = self.positions[symbol]
        direction = 1.0 if position.side == LONG else -1.0
        pnl = (fill_price - position.entry_price) * quantity * direction - commission
        cost = position.entry_price * quantity
        trade = Trade(
            symbol=symbol,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=fill_price,
            quantity=quantity,
            pnl=pnl,
            roi=pnl / cost * 100.0 if cost > 0 else 0.0,
            entry_time=self.opened_at.get(symbol, timestamp),
            exit_time=timestamp,
        )
        self.realized_pnl += pnl
        self.trades.append(trade)
        position.quantity -= quantity
        if position.quantity <= 0:
            self.positions.pop(symbol, None)
            self.opened_at.pop(symbol, None)
        return trade

    def _open(self, timestamp: datetime, symbol: str, side: str, quantity: float, fill_price: float) -> None:
        position = self.positions.get(symbol)
        if position is None:
            self.positions[symbol] = Position(
                symbol=symbol, side=side, quantity=quantity, entry_price=fill_price
            )
            self.opened_at[symbol] = timestamp
            return
        new_qty = position.quantity + quantity
        position.entry_price = (
            position.entry_price * position.quantity + fill_price * quantity
        ) / new_qty
        position.quantity = new_qty

    def execute(
        self,
        timestamp: datetime,
        symbol: str,
        signal: TradeSignal,
        price: float,
    ) -> Tuple[Optional[Fill], List[Trade]]:
        if not signal.is_trade:
            return None, []

        side = signal.action
        quantity = float(signal.quantity)
        fill_price = self._slipped_price(side, price)
        notional = fill_price * quantity
        commission = self._commission(notional)
        self.cash -= notional if side == BUY else -notional
        self.cash -= commission

        closed: List[Trade] = []
        held = self._signed_quantity(symbol)
        opposing = (held > 0 and side != BUY) or (held < 0 and side == BUY)
        remaining = quantity
        if opposing:
            close_qty = min(quantity, abs(held))
            closed.append(
                self._close(timestamp, symbol, close_qty, fill_price, commission * close_qty / quantity)
            )
            remaining -= close_qty
        if remaining > 0:
            self._open(timestamp, symbol, LONG if side == BUY else SHORT, remaining, fill_price)

        fill = Fill(
            timestamp=timestamp,
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=fill_price,
            notional=notional,
            commission=commission,
            slippage_bps=self.slippage_bps,
            rationale=signal.reason,
        )
        self.fills.append(fill)
        self.last_prices[symbol] = price
        return fill, closed

    def equity(self) -> float:
        market_value = 0.0
        for symbol, position in self.positions.items():
            mark = self.last_prices.get(symbol, position.entry_price)
            market_value += self._signed_quantity(symbol) * mark
        return self.cash + market_value

    def mark_to_market(self, timestamp: datetime, prices: Dict[str, float]) -> float:
        self.last_prices.update({symbol: float(price) for symbol, price in prices.items()})
        for symbol, position in self.positions.items():
            mark = self.last_prices.get(symbol, position.entry_price)
            direction = 1.0 if position.side == LONG else -1.0
            position.unrealized_pnl = (mark - position.entry_price) * position.quantity * direction
        equity = self.equity()
        self.equity_curve.append(
            {
                "timestamp": timestamp,
                "cash": self.cash,
                "equity": equity,
                "realized_pnl": self.realized_pnl,
            }
        )
        return equity

    def account_snapshot(self) -> AccountSnapshot:
        positions = [
            Position(
                symbol=p.symbol,
                side=p.side,
                quantity=p.quantity,
                entry_price=p.entry_price,
                unrealized_pnl=p.unrealized_pnl,
            )
            for p in self.positions.values()
        ]
        return AccountSnapshot(equity=self.equity(), positions=positions)

    def fills_as_records(self) -> List[Dict]:
        return [asdict(fill) for fill in self.fills]

    def trades_as_records(self) -> List[Dict]:
        return [asdict(trade) for trade in self.trades]
