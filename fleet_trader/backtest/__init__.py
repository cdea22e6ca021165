from .broker import SimBroker
from .engine import BacktestEngine, BacktestResult
from .feed import ReplayFeed

__all__ = ["BacktestEngine", "BacktestResult", "ReplayFeed", "SimBroker"]
