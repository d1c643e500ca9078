"""
Range Query Engine

Answers "N datapoints for pair P at granularity G, optionally ending at T"
using only tail-relative reads from the series store.

The requested interval must be a multiple of the native collection interval.
The engine reads ``amount * interval / native`` native samples ending at the
slot that contains ``before`` (or at the tail), then down-samples by selection:
it keeps the samples lying on the coarse grid anchored at the newest sample in
the window. It does not average or compute OHLC buckets; a bucket is
represented by its aligned sample.
"""

import logging
import math
from typing import List, Optional

from ..exceptions import (
    EmptySeries,
    IntervalMisaligned,
    IntervalTooSmall,
    InvalidAmount
)
from ..models import Datapoint, QueryWindow
from ..pairs import PairRegistry
from ..store import SeriesStore

logger = logging.getLogger(__name__)

MAX_DATAPOINTS = 720


class RangeQueryEngine:
    """Stateless, read-only range queries over stored series."""

    def __init__(self,
                 store: SeriesStore,
                 registry: PairRegistry,
                 interval: int,
                 max_amount: int = MAX_DATAPOINTS):
        """
        Args:
            store: Series store adapter
            registry: Supported pairs
            interval: Native collection interval in seconds
            max_amount: Server-side cap on returned datapoints
        """
        self.store = store
        self.registry = registry
        self.interval = interval
        self.max_amount = max_amount

    def build_window(self,
                     interval: Optional[int] = None,
                     amount: Optional[int] = None,
                     before: Optional[int] = None) -> QueryWindow:
        """Validate query parameters; amounts above the cap are clamped."""
        interval = self.interval if interval is None else int(interval)
        if interval < self.interval:
            raise IntervalTooSmall(interval, self.interval)
        if interval % self.interval:
            raise IntervalMisaligned(interval, self.interval)

        if amount is None:
            amount = self.max_amount
        if amount < 1:
            raise InvalidAmount(amount)
        if amount > self.max_amount:
            logger.debug(f"Clamping requested amount {amount} to {self.max_amount}")
            amount = self.max_amount

        return QueryWindow(amount=amount, interval=interval, native_interval=self.interval, before=before)

    async def tail_offset(self, pair: str, before: Optional[int]) -> Optional[int]:
        """
        Number of native slots between the tail and the slot containing ``before``.

        Returns None when the series is empty.
        """
        if before is None:
            return 0
        try:
            last = await self.store.last_timestamp(pair)
        except EmptySeries:
            return None
        return max(0, math.ceil((last - before) / self.interval))

    async def query(self,
                    pair: str,
                    interval: Optional[int] = None,
                    amount: Optional[int] = None,
                    before: Optional[int] = None) -> List[Datapoint]:
        """
        Run a range query.

        Args:
            pair: Pair identifier
            interval: Output granularity in seconds, defaults to the native interval
            amount: Number of output datapoints, defaults to and capped at max_amount
            before: Optional Unix timestamp the window ends at

        Returns:
            Datapoints in ascending timestamp order

        Raises:
            PairNotFound, IntervalTooSmall, IntervalMisaligned, InvalidAmount
            StoreUnavailable
        """
        resolved = self.registry.get(pair)
        window = self.build_window(interval, amount, before)

        offset = await self.tail_offset(resolved.name, window.before)
        if offset is None:
            return []

        native_points = await self.store.range(
            resolved.name,
            -(window.base_amount + offset),
            -1 - offset
        )
        return self.select_aligned(native_points, window)

    @staticmethod
    def select_aligned(points: List[Datapoint], window: QueryWindow) -> List[Datapoint]:
        """Keep the samples on the ``window.interval`` grid anchored at the newest sample."""
        ordered = sorted(points, key=lambda p: p.timestamp)
        if not ordered:
            return []
        if window.multiplier == 1:
            return ordered[-window.amount:]

        anchor = ordered[-1].timestamp
        selected = [p for p in ordered if (anchor - p.timestamp) % window.interval == 0]
        return selected[-window.amount:]
