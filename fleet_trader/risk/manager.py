from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

from fleet_trader.types import BUY, CircuitBreakerState


@dataclass(frozen=True)
class RiskLimits:
    max_drawdown_percent: float = 15.0
    max_position_size_percent: float = 10.0
    max_daily_trades: int = 20
    min_win_rate: float = 0.4
    slippage_percent: float = 0.15
    risk_reward_ratio: float = 1.5
    max_leverage: float = 3.0


@dataclass(frozen=True)
class PositionRisk:
    max_loss_amount: float
    risk_percent: float
    risk_reward_ratio: float
    recommended_action: str
    assessment: str

    @property
    def acceptable(self) -> bool:
        return self.recommended_action != "REDUCE"


def _finite(*values: float) -> bool:
    try:
        return all(math.isfinite(float(value)) for value in values)
    except (TypeError, ValueError):
        return False


class RiskManager:
    def __init__(self, limits: RiskLimits | None = None) -> None:
        self.limits = limits or RiskLimits()

    def check_circuit_breaker(
        self,
        current_equity: float,
        reference_equity: float,
    ) -> CircuitBreakerState:
        if not _finite(current_equity, reference_equity) or reference_equity <= 0:
            return CircuitBreakerState(
                should_stop=True,
                reason=f"Invalid equity reference (current={current_equity}, reference={reference_equity})",
            )

        drawdown = (reference_equity - current_equity) / reference_equity * 100.0
        if drawdown >= self.limits.max_drawdown_percent:
            return CircuitBreakerState(
                should_stop=True,
                reason=(
                    f"Drawdown {drawdown:.1f}% exceeds limit "
                    f"{self.limits.max_drawdown_percent:.1f}%"
                ),
                drawdown_percent=drawdown,
            )
        return CircuitBreakerState(
            should_stop=False,
            reason="Within risk limits",
            drawdown_percent=max(drawdown, 0.0),
        )

    def calculate_position_size(
        self,
        equity: float,
        volatility: float,
        leverage: float,
        price: float,
    ) -> float:
        if not _finite(equity, volatility, leverage, price):
            return 0.0
        if equity <= 0 or price <= 0 or leverage <= 0 or volatility < 0:
            return 0.0

        base = equity * self.limits.max_position_size_percent / 100.0
        volatility_factor = max(0.5, 1.0 - volatility * 2.0)
        notional = base * volatility_factor * leverage
        return min(notional, equity * leverage)

    def check_trade_limit(self, trades_in_window: int) -> Tuple[bool, str]:
        if trades_in_window >= self.limits.max_daily_trades:
            return False, f"Daily trade limit ({self.limits.max_daily_trades}) reached"
        remaining = self.limits.max_daily_trades - trades_in_window
        return True, f"{remaining} trades remaining today"

    def is_win_rate_acceptable(self, win_rate: float) -> bool:
        return win_rate >= self.limits.min_win_rate

    def apply_slippage(self, price: float, side: str = BUY) -> float:
        # shifts a target level against the position
        amount = price * self.limits.slippage_percent / 100.0
        return price - amount if side == BUY else price + amount

    def assess_position_risk(
        self,
        entry_price: float,
        stop_loss: float,
        take_profit: float,
        quantity: float,
        equity: float,
        leverage: float,
        volatility: float,
    ) -> PositionRisk:
        max_loss = abs(entry_price - stop_loss) * quantity
        max_gain = abs(take_profit - entry_price) * quantity
        risk_percent = max_loss / equity * 100.0 if equity > 0 else math.inf
        reward_ratio = max_gain / max_loss if max_loss > 0 else math.inf

        action = "OK"
        assessment = "OK"

        if risk_percent > self.limits.max_position_size_percent:
            action = "REDUCE"
            assessment = (
                f"Risk {risk_percent:.1f}% exceeds limit "
                f"{self.limits.max_position_size_percent}%"
            )
        if reward_ratio < self.limits.risk_reward_ratio:
            action = "REDUCE"
            assessment = f"Risk:Reward {reward_ratio:.2f} below {self.limits.risk_reward_ratio}"
        if volatility > 0.05:
            action = "REDUCE"
            assessment = f"High volatility {volatility * 100:.2f}% - reduce position"
        if leverage > self.limits.max_leverage:
            action = "REDUCE"
            assessment = f"Leverage {leverage}x too high"

        return PositionRisk(
            max_loss_amount=max_loss,
            risk_percent=risk_percent,
            risk_reward_ratio=reward_ratio,
            recommended_action=action,
            assessment=assessment,
        )
