"""
Series Gap Detection

Detects native-interval slots that were never collected because the service
was down. The detector compares the last stored timestamp of a pair against
the current time truncated to the collection interval and enumerates the
missing slot timestamps in between.

The slot at the aligned current time is not yet due (the running cycle is
about to collect it) and is never reported as missing.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..store import SeriesStore

# Configure logging
logger = logging.getLogger(__name__)


def align_timestamp(timestamp: float, interval: int) -> int:
    """Truncate a Unix timestamp to the interval boundary at or before it."""
    if interval <= 0:
        raise ValueError("interval must be positive")
    timestamp = int(timestamp)
    return timestamp - (timestamp % interval)


def missing_timestamps(last_timestamp: int, now_aligned: int, interval: int) -> List[int]:
    """
    Slot timestamps strictly between the last stored sample and ``now_aligned``.

    ``last + k * interval`` for ``k = 1 .. missing_count - 1`` where
    ``missing_count = (now_aligned - last) // interval``.
    """
    missing_count = (now_aligned - last_timestamp) // interval
    if missing_count <= 1:
        return []
    return [last_timestamp + k * interval for k in range(1, missing_count)]


@dataclass
class DataGap:
    """Consecutive native-interval slots with no stored sample."""
    pair: str
    last_timestamp: int
    now_aligned: int
    interval: int
    timestamps: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.timestamps)

    @property
    def outage_seconds(self) -> int:
        return self.interval * self.count

    @property
    def start(self) -> Optional[int]:
        return self.timestamps[0] if self.timestamps else None

    @property
    def end(self) -> Optional[int]:
        return self.timestamps[-1] if self.timestamps else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'pair': self.pair,
            'last_timestamp': self.last_timestamp,
            'now_aligned': self.now_aligned,
            'interval': self.interval,
            'count': self.count,
            'start': self.start,
            'end': self.end,
            'outage_seconds': self.outage_seconds
        }


class GapDetector:
    """
    Detects collection gaps from the tail of a stored series.

    An empty series is not a gap: EmptySeries raised by the store propagates
    so the caller can run initialization instead of backfilling from epoch.
    """

    def __init__(self, store: SeriesStore, interval: int):
        """
        Initialize GapDetector.

        Args:
            store: Series store adapter
            interval: Native collection interval in seconds
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.store = store
        self.interval = interval

    async def detect(self, pair: str, now: Optional[float] = None) -> Optional[DataGap]:
        """
        Detect the gap between the stored tail and the current slot.

        Args:
            pair: Pair identifier
            now: Current Unix time, defaults to the wall clock

        Returns:
            DataGap, or None when the series is up to date

        Raises:
            EmptySeries: the pair has no stored data
            StoreUnavailable: store unreachable
        """
        now_aligned = align_timestamp(time.time() if now is None else now, self.interval)
        last = await self.store.last_timestamp(pair)

        timestamps = missing_timestamps(last, now_aligned, self.interval)
        if not timestamps:
            logger.debug(f"No gap for {pair}: last sample {last}, current slot {now_aligned}")
            return None

        gap = DataGap(
            pair=pair,
            last_timestamp=last,
            now_aligned=now_aligned,
            interval=self.interval,
            timestamps=timestamps
        )
        logger.info(
            f"Gap detected for {pair}: {gap.count} missing slots from "
            f"{datetime.fromtimestamp(gap.start, tz=timezone.utc).isoformat()} to "
            f"{datetime.fromtimestamp(gap.end, tz=timezone.utc).isoformat()}"
        )
        return gap
