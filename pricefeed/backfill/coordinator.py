"""
Backfill Coordinator

Repairs collection gaps from the fallback OHLC source and seeds series for
pairs that have no data yet. All fallback data is fetched and reconciled in
memory first; the store is written once, with a single batched append, only
after every fetch succeeded. A failed fetch therefore never leaves a partial
backfill behind.

Boundary rule: reconstructed datapoints are deduplicated by timestamp and only
those strictly newer than the stored tail are appended. During initialization
the long-horizon series contributes only points strictly older than the first
native-resolution fallback sample.
"""

import logging
import time
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from ..exceptions import EmptySeries
from ..fetchers import BaseFetcher, KrakenInterval, KRAKEN_MAX_DATAPOINTS
from ..models import Datapoint, datapoints_from_ohlc
from ..pairs import Pair
from ..store import SeriesStore
from .gap_detector import DataGap, align_timestamp
from .resampler import resample

# Configure logging
logger = logging.getLogger(__name__)


def deduplicate(points: List[Datapoint]) -> List[Datapoint]:
    """Sort by timestamp, keeping the first occurrence of each timestamp."""
    seen = set()
    result = []
    for point in sorted(points, key=lambda p: p.timestamp):
        if point.timestamp in seen:
            continue
        seen.add(point.timestamp)
        result.append(point)
    return result


class BackfillCoordinator:
    """
    Orchestrates gap repair end to end: interval selection, fallback fetch,
    resampling to the native interval, exact-timestamp matching and the
    batched write.
    """

    def __init__(self,
                 store: SeriesStore,
                 fetcher: BaseFetcher,
                 interval: int,
                 max_samples: int = KRAKEN_MAX_DATAPOINTS,
                 init_interval: KrakenInterval = KrakenInterval.DAY):
        """
        Initialize BackfillCoordinator.

        Args:
            store: Series store adapter
            fetcher: Fallback OHLC source
            interval: Native collection interval in seconds
            max_samples: Rows the fallback source returns per call
            init_interval: Long-horizon interval fetched when seeding a pair
        """
        self.store = store
        self.fetcher = fetcher
        self.interval = interval
        self.max_samples = max_samples
        self.init_interval = init_interval

        self.candidate_intervals = [
            candidate for candidate in KrakenInterval
            if candidate.seconds >= interval and candidate.seconds % interval == 0
        ]
        if not self.candidate_intervals:
            raise ValueError(f"no fallback interval is a multiple of the {interval}s collection interval")

        logger.info(
            f"BackfillCoordinator initialized: interval={interval}s, "
            f"fallback intervals={[c.name for c in self.candidate_intervals]}"
        )

    def select_fallback_interval(self, outage_seconds: int) -> Tuple[KrakenInterval, bool]:
        """
        Pick the finest fallback interval whose sample limit covers the outage.

        Returns:
            (interval, covered); covered is False when even the coarsest
            candidate cannot span the outage
        """
        for candidate in self.candidate_intervals:
            if candidate.seconds * self.max_samples >= outage_seconds:
                return candidate, True
        return self.candidate_intervals[-1], False

    async def _fetch_datapoints(self, pair: Pair, interval: KrakenInterval) -> List[Datapoint]:
        """Fetch fallback closes and bring them to the native interval."""
        frame = await self.fetcher.fetch_ohlc(pair.fallback_name, interval.value)
        points = datapoints_from_ohlc(frame)
        if interval.seconds != self.interval:
            points = resample(points, interval.seconds, self.interval)
        return points

    async def _stored_tail(self, pair: Pair) -> Optional[int]:
        try:
            return await self.store.last_timestamp(pair.name)
        except EmptySeries:
            return None

    async def backfill(self, pair: Pair, gap: DataGap) -> List[Datapoint]:
        """
        Repair a detected gap.

        Gap slots without an exact fallback match are dropped; no price is
        invented for a slot the fallback source does not cover.

        Returns:
            Datapoints written to the store, oldest first

        Raises:
            FallbackUnavailable, FallbackFormatError: fetch failed, nothing written
            StoreUnavailable: store unreachable
        """
        if not gap.timestamps:
            return []

        outage = timedelta(seconds=gap.outage_seconds)
        interval, covered = self.select_fallback_interval(gap.outage_seconds)
        logger.info(
            f"Outage for {pair.name} was {outage} long; "
            f"using {interval.name} fallback covering "
            f"{timedelta(seconds=interval.seconds * self.max_samples)}"
        )
        if not covered:
            logger.warning(
                f"All gap slots for {pair.name} will not be able to be backfilled: "
                f"outage {outage} exceeds fallback coverage"
            )

        fallback_points = await self._fetch_datapoints(pair, interval)
        prices: Dict[int, float] = {point.timestamp: point.price for point in fallback_points}

        reconstructed = [
            Datapoint(price=prices[timestamp], timestamp=timestamp)
            for timestamp in gap.timestamps
            if timestamp in prices
        ]
        dropped = gap.count - len(reconstructed)
        if dropped:
            logger.warning(f"{dropped} of {gap.count} gap slots for {pair.name} have no fallback coverage")

        last = await self._stored_tail(pair)
        if last is not None:
            reconstructed = [point for point in reconstructed if point.timestamp > last]
        reconstructed = deduplicate(reconstructed)

        if reconstructed:
            await self.store.append_many(pair.name, reconstructed)
        logger.info(f"Backfilled {len(reconstructed)} datapoints for {pair.name}")
        return reconstructed

    async def initialize(self, pair: Pair, now: Optional[float] = None) -> List[Datapoint]:
        """
        Seed an empty series from the fallback source.

        Combines the native-resolution fallback series with a resampled
        long-horizon series reaching further back, drops the still-forming
        current candle and writes everything in one batched append.

        Returns:
            Datapoints written to the store, oldest first
        """
        now_aligned = align_timestamp(time.time() if now is None else now, self.interval)
        native_interval = self.candidate_intervals[0]

        native_points = await self._fetch_datapoints(pair, native_interval)

        extra_points: List[Datapoint] = []
        if (self.init_interval.seconds > native_interval.seconds
                and self.init_interval.seconds % self.interval == 0):
            extra_points = await self._fetch_datapoints(pair, self.init_interval)
            if native_points:
                earliest = min(point.timestamp for point in native_points)
                extra_points = [point for point in extra_points if point.timestamp < earliest]
        else:
            logger.debug(f"Skipping long-horizon fetch for {pair.name}: {self.init_interval.name} is not coarser")

        selected = deduplicate(extra_points + native_points)
        selected = [point for point in selected if point.timestamp < now_aligned]

        last = await self._stored_tail(pair)
        if last is not None:
            selected = [point for point in selected if point.timestamp > last]

        if selected:
            await self.store.append_many(pair.name, selected)
        logger.info(
            f"Initialized {pair.name} with {len(selected)} datapoints "
            f"({len(extra_points)} from {self.init_interval.name})"
        )
        return selected
