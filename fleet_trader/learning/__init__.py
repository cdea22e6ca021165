from .engine import LearningEngine, ParameterAdjustment, generate_learning_update, rules_for
from .performance import analyze_performance, calculate_optimization_score
from .report import compare_parameters, estimate_performance_improvement, format_parameters
from .store import ParameterStore

__all__ = [
    "LearningEngine",
    "ParameterAdjustment",
    "ParameterStore",
    "analyze_performance",
    "calculate_optimization_score",
    "compare_parameters",
    "estimate_performance_improvement",
    "format_parameters",
    "generate_learning_update",
    "rules_for",
]
