"""
Series value objects

Datapoint is the unit moved between the store, backfill and query components.
It carries no identity of its own: identity is its position in the pair's
series. Datapoints produced by interpolation are indistinguishable from
observed ones; the store schema has no provenance field.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import pandas as pd


@dataclass(frozen=True)
class Datapoint:
    """A single price sample at a Unix-second timestamp."""
    price: float
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {'price': self.price, 'timestamp': self.timestamp}


@dataclass(frozen=True)
class QueryWindow:
    """Validated logical range query, expressed in native-interval samples."""
    amount: int
    interval: int
    native_interval: int
    before: Optional[int] = None

    @property
    def multiplier(self) -> int:
        """Native samples per requested interval."""
        return self.interval // self.native_interval

    @property
    def base_amount(self) -> int:
        """Native-resolution samples needed to produce ``amount`` points."""
        return self.amount * self.multiplier


def datapoints_from_ohlc(frame: pd.DataFrame) -> list:
    """Convert an OHLC frame (``timestamp`` and ``close`` columns) to close-price datapoints."""
    if frame is None or frame.empty:
        return []
    return [
        Datapoint(price=float(close), timestamp=int(ts))
        for ts, close in zip(frame['timestamp'], frame['close'])
    ]
