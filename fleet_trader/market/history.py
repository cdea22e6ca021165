from __future__ import annotations

from collections import deque
from datetime import datetime
import math
from typing import Deque, List, Optional

from fleet_trader.types import PricePoint


class PriceHistory:
    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = int(capacity)
        self._points: Deque[PricePoint] = deque(maxlen=self.capacity)

    def push(self, price: float, timestamp: Optional[datetime] = None) -> None:
        try:
            value = float(price)
        except (TypeError, ValueError):
            return
        if not math.isfinite(value) or value <= 0:
            return
        self._points.append(PricePoint(price=value, timestamp=timestamp))

    def as_sequence(self) -> List[float]:
        return [point.price for point in self._points]

    def points(self) -> List[PricePoint]:
        return list(self._points)

    @property
    def last(self) -> Optional[float]:
        if not self._points:
            return None
        return self._points[-1].price

    def __len__(self) -> int:
        return len(self._points)
