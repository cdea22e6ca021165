from __future__ import annotations


class CoreError(Exception):
    kind = "core_error"


class InvalidInput(CoreError):
    kind = "invalid_input"


class InsufficientHistory(CoreError):
    kind = "insufficient_history"


class RiskRejected(CoreError):
    kind = "risk_rejected"


class ComputationError(CoreError):
    kind = "computation_error"
