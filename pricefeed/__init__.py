"""
PriceFeed Time-Series Continuity & Query Engine

Samples asset-pair prices into append-only Redis series, repairs gaps left by
downtime from a lower-resolution fallback source, and serves interval-aligned
range queries using tail-relative offsets only.

Subpackages:
- store/: Paired price/timestamp series adapter
- fetchers/: Fallback OHLC and ticker sources
- backfill/: Gap detection, resampling and gap repair
- query/: Range query engine
- collection/: Price sources, collector, cycle and scheduler
"""

__version__ = "1.0.0"

from .models import Datapoint, QueryWindow
from .pairs import Pair, PairRegistry

__all__ = [
    "Datapoint",
    "QueryWindow",
    "Pair",
    "PairRegistry"
]
