"""
Scheduled price collection

Key Components:
- PriceSource / TickerPriceSource: Current price per pair
- PriceCollector: Stores one sample per pair per cycle
- CollectionCycle: Gap repair followed by collection, for every pair
- IntervalScheduler: Runs the cycle on interval boundaries
"""

from .price_source import PriceSource, TickerPriceSource
from .collector import PriceCollector
from .cycle import CollectionCycle, PairCycleResult
from .scheduler import IntervalScheduler

__all__ = [
    "PriceSource",
    "TickerPriceSource",
    "PriceCollector",
    "CollectionCycle",
    "PairCycleResult",
    "IntervalScheduler"
]
