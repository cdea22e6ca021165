from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

import pandas as pd


def _coerce_timestamp(ts: pd.Timestamp | str) -> pd.Timestamp:
    value = pd.Timestamp(ts)
    if value.tzinfo is None:
        return value.tz_localize("UTC")
    return value.tz_convert("UTC")


class ReplayFeed:
    """Replays one symbol's price frame in timestamp order."""

    def __init__(self, symbol: str, prices: pd.DataFrame) -> None:
        if "price" not in prices.columns:
            raise ValueError("Price frame must contain a 'price' column.")
        frame = prices.copy()
        if "timestamp" in frame.columns:
            frame = frame.set_index("timestamp")
        frame.index = pd.DatetimeIndex([_coerce_timestamp(ts) for ts in frame.index])
        frame = frame[~frame.index.duplicated(keep="last")].sort_index()
        self.symbol = symbol.upper()
        self.prices = frame

    @property
    def timeline(self) -> List[pd.Timestamp]:
        return list(self.prices.index)

    def __len__(self) -> int:
        return len(self.prices)

    def ticks(self) -> Iterator[Tuple[pd.Timestamp, float, Optional[float]]]:
        has_reference = "reference_price" in self.prices.columns
        for ts, row in self.prices.iterrows():
            reference = None
            if has_reference and not pd.isna(row["reference_price"]):
                reference = float(row["reference_price"])
            yield ts, float(row["price"]), reference
