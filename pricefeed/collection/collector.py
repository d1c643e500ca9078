"""
Price collection

Writes one fresh sample per pair per cycle, stamped with the current time
truncated to the collection interval so stored timestamps stay on the slot
grid the gap detector and fallback source use.
"""

import logging
import time
from typing import Optional

from ..backfill import align_timestamp
from ..exceptions import EmptySeries
from ..models import Datapoint
from ..pairs import Pair
from ..store import SeriesStore
from .price_source import PriceSource

logger = logging.getLogger(__name__)


class PriceCollector:
    """Quotes a pair and appends the price at the current slot."""

    def __init__(self, store: SeriesStore, price_source: PriceSource, interval: int):
        self.store = store
        self.price_source = price_source
        self.interval = interval

    async def collect(self, pair: Pair, now: Optional[float] = None) -> Optional[Datapoint]:
        """
        Collect and store the current price of ``pair``.

        Returns:
            The stored datapoint, or None if the current slot is already filled

        Raises:
            PriceSourceError: quote failed, nothing written
            StoreUnavailable: store unreachable
        """
        slot = align_timestamp(time.time() if now is None else now, self.interval)

        try:
            last = await self.store.last_timestamp(pair.name)
        except EmptySeries:
            last = None
        if last is not None and slot <= last:
            logger.debug(f"Slot {slot} for {pair.name} already stored (tail {last}), skipping")
            return None

        price = await self.price_source.quote(pair)
        datapoint = Datapoint(price=price, timestamp=slot)
        await self.store.append(pair.name, datapoint)

        logger.info(f"Stored price {price} for {pair.name} at {slot}")
        return datapoint
