"""
Collection Cycle

One scheduled pass over every configured pair: repair the series (seed it if
empty, backfill it if a gap is detected), then collect the current price.
Repair runs before collection so appends stay in chronological order. A pair
whose repair fails is not collected in that cycle: appending the current slot
would move the tail past the unrepaired gap, which can then never be filled.

Pairs are processed concurrently and independently. A failure in one pair's
pipeline is logged and recorded in its result; it never aborts the others and
is never re-raised, because the next cycle is the retry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..backfill import BackfillCoordinator, GapDetector
from ..exceptions import EmptySeries, PriceFeedError
from ..pairs import Pair, PairRegistry
from .collector import PriceCollector

logger = logging.getLogger(__name__)


@dataclass
class PairCycleResult:
    """Outcome of one pair's pass through a cycle."""
    pair: str
    initialized: int = 0
    backfilled: int = 0
    gap_slots: int = 0
    collected: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class CollectionCycle:
    """Per-cycle orchestration of gap repair and collection for all pairs."""

    def __init__(self,
                 registry: PairRegistry,
                 detector: GapDetector,
                 coordinator: BackfillCoordinator,
                 collector: PriceCollector):
        self.registry = registry
        self.detector = detector
        self.coordinator = coordinator
        self.collector = collector

    async def run(self, now: Optional[float] = None) -> Dict[str, PairCycleResult]:
        """Run one cycle over every registered pair."""
        now = time.time() if now is None else now
        pairs = list(self.registry)
        results = await asyncio.gather(*(self.run_pair(pair, now) for pair in pairs))

        failed = [result.pair for result in results if not result.ok]
        logger.info(f"Cycle finished for {len(pairs)} pairs ({len(failed)} with errors)")
        return {result.pair: result for result in results}

    async def run_pair(self, pair: Pair, now: float) -> PairCycleResult:
        result = PairCycleResult(pair=pair.name)

        try:
            await self._repair(pair, now, result)
        except PriceFeedError as e:
            logger.error(f"Repair failed for {pair.name}, skipping collection this cycle: {e}")
            result.errors.append(f"repair: {e}")
            return result
        except Exception as e:
            logger.exception(f"Unexpected error repairing {pair.name}: {e}")
            result.errors.append(f"repair: {e!r}")
            return result

        try:
            result.collected = await self.collector.collect(pair, now) is not None
        except PriceFeedError as e:
            logger.error(f"Collection failed for {pair.name}: {e}")
            result.errors.append(f"collect: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error collecting {pair.name}: {e}")
            result.errors.append(f"collect: {e!r}")

        return result

    async def _repair(self, pair: Pair, now: float, result: PairCycleResult) -> None:
        try:
            gap = await self.detector.detect(pair.name, now)
        except EmptySeries:
            logger.info(f"No data stored for {pair.name}, initializing from fallback")
            result.initialized = len(await self.coordinator.initialize(pair, now))
            return

        if gap is None:
            return
        result.gap_slots = gap.count
        result.backfilled = len(await self.coordinator.backfill(pair, gap))
