from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from fleet_trader.types import EquitySnapshot, RiskMetrics

TRADING_DAYS = 252


def _account_values(snapshots: Sequence[EquitySnapshot]) -> pd.Series:
    if not snapshots or len(snapshots) < 2:
        return pd.Series(dtype=float)
    frame = pd.DataFrame(
        {
            "timestamp": pd.to_datetime([snap.timestamp for snap in snapshots], utc=True),
            "account_value": [float(snap.account_value) for snap in snapshots],
        }
    )
    frame = frame.sort_values("timestamp", kind="stable")
    return frame.set_index("timestamp")["account_value"]


def _period_returns(values: pd.Series) -> pd.Series:
    previous = values.shift(1)
    mask = previous > 0
    return ((values - previous) / previous)[mask].dropna()


def _max_drawdown(values: pd.Series) -> float:
    if values.empty:
        return 0.0
    rolling_peak = values.cummax()
    drawdowns = values / rolling_peak - 1.0
    return min(float(drawdowns.min()), 0.0)


def max_drawdown(snapshots: Sequence[EquitySnapshot]) -> float:
    return _max_drawdown(_account_values(snapshots)) * 100.0


def volatility(snapshots: Sequence[EquitySnapshot]) -> float:
    returns = _period_returns(_account_values(snapshots))
    if returns.empty:
        return 0.0
    return float(returns.std(ddof=0) * np.sqrt(TRADING_DAYS) * 100.0)


def sortino_ratio(snapshots: Sequence[EquitySnapshot], return_percent: float) -> float:
    returns = _period_returns(_account_values(snapshots))
    if returns.empty:
        return 0.0

    down = returns[returns < 0]
    if down.empty:
        return 5.0 if return_percent > 0 else 0.0

    excess = np.minimum(down - returns.mean(), 0.0)
    downside = float(np.sqrt((excess ** 2).sum() / len(returns)))
    annual_downside = downside * np.sqrt(TRADING_DAYS)
    if annual_downside == 0:
        return 0.0
    annual_return = return_percent / 100.0 * np.sqrt(TRADING_DAYS)
    return float(annual_return / annual_downside)


def calmar_ratio(max_drawdown_percent: float, return_percent: float, days_active: float) -> float:
    if max_drawdown_percent == 0 or days_active == 0:
        return 0.0
    annual_return = return_percent / 100.0 * (365.0 / days_active)
    return annual_return / abs(max_drawdown_percent / 100.0)


def sharpe_ratio(volatility_percent: float, return_percent: float, days_active: float) -> float:
    if volatility_percent == 0 or days_active == 0:
        return 0.0
    annual_return = return_percent / 100.0 * (365.0 / days_active)
    return annual_return / (volatility_percent / 100.0)


def calculate_all_risk_metrics(
    snapshots: Sequence[EquitySnapshot],
    return_percent: Optional[float] = None,
) -> RiskMetrics:
    values = _account_values(snapshots)
    if return_percent is None:
        if values.empty or values.iloc[0] <= 0:
            return_percent = 0.0
        else:
            return_percent = float((values.iloc[-1] / values.iloc[0] - 1.0) * 100.0)
    if values.empty:
        return RiskMetrics(return_percent=return_percent)

    span = (values.index[-1] - values.index[0]).total_seconds() / 86400.0
    days_active = max(1.0, span)

    drawdown = max_drawdown(snapshots)
    vol = volatility(snapshots)
    return RiskMetrics(
        max_drawdown=drawdown,
        volatility=vol,
        sharpe_ratio=sharpe_ratio(vol, return_percent, days_active),
        sortino_ratio=sortino_ratio(snapshots, return_percent),
        calmar_ratio=calmar_ratio(drawdown, return_percent, days_active),
        return_percent=return_percent,
        days_active=days_active,
    )


def metrics_from_account_values(
    account_values: Iterable[Tuple[datetime, float]],
    initial_capital: float,
) -> RiskMetrics:
    snapshots = [
        EquitySnapshot(
            timestamp=timestamp,
            account_value=float(value),
            total_pnl=float(value) - initial_capital,
            return_percent=(float(value) / initial_capital - 1.0) * 100.0 if initial_capital > 0 else 0.0,
        )
        for timestamp, value in account_values
    ]
    if not snapshots or initial_capital <= 0:
        return RiskMetrics()
    return calculate_all_risk_metrics(snapshots, return_percent=snapshots[-1].return_percent)
