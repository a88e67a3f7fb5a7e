"""
PaperDesk Price History

Bounded per-symbol chart series. Each symbol keeps at most ``max_points``
observations; the oldest is evicted first.
"""

from collections import deque
from typing import Deque, Dict, List, Optional

import pandas as pd

from core.models import HistoryPoint, Quote

DEFAULT_MAX_POINTS = 100


def format_display_time(ts) -> str:
    """12-hour clock with seconds, e.g. ``02:05:09 PM``."""
    return ts.astimezone().strftime("%I:%M:%S %p")


class PriceHistoryBuffer:
    """Per-symbol FIFO of HistoryPoints ordered by arrival."""

    def __init__(self, max_points: int = DEFAULT_MAX_POINTS):
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        self.max_points = max_points
        self._series: Dict[str, Deque[HistoryPoint]] = {}

    def append(self, symbol: str, quote: Quote) -> None:
        if not quote.price > 0:
            return
        series = self._series.get(symbol)
        if series is None:
            series = deque(maxlen=self.max_points)
            self._series[symbol] = series
        series.append(
            HistoryPoint(
                time=format_display_time(quote.observed_at),
                price=quote.price,
                timestamp=quote.observed_at,
            )
        )

    def points(self, symbol: str) -> List[HistoryPoint]:
        return list(self._series.get(symbol, ()))

    def latest(self, symbol: str) -> Optional[HistoryPoint]:
        series = self._series.get(symbol)
        return series[-1] if series else None

    def symbols(self) -> List[str]:
        return list(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def clear(self, symbol: Optional[str] = None) -> None:
        if symbol is None:
            self._series.clear()
        else:
            self._series.pop(symbol, None)

    def to_frame(self, symbol: str) -> pd.DataFrame:
        """Chart-ready frame with ``time``, ``price`` and ``timestamp`` columns."""
        points = self.points(symbol)
        return pd.DataFrame(
            {
                "time": [p.time for p in points],
                "price": [p.price for p in points],
                "timestamp": pd.to_datetime([p.timestamp for p in points], utc=True),
            },
            columns=["time", "price", "timestamp"],
        )
