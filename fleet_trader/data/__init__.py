from .loaders import load_equity_snapshots, load_price_history, load_trades

__all__ = ["load_equity_snapshots", "load_price_history", "load_trades"]
