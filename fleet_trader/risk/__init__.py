from .manager import PositionRisk, RiskLimits, RiskManager
from .metrics import calculate_all_risk_metrics, metrics_from_account_values

__all__ = [
    "PositionRisk",
    "RiskLimits",
    "RiskManager",
    "calculate_all_risk_metrics",
    "metrics_from_account_values",
]
