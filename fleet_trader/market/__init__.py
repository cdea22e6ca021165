from .history import PriceHistory

__all__ = ["PriceHistory"]
