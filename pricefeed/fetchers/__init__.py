"""
Data Fetchers Package

External market data sources used for gap backfill and price collection:
- BaseFetcher: Abstract base class with session lifecycle and error translation
- KrakenFetcher: Kraken public OHLC and ticker endpoints
"""

from .base_fetcher import BaseFetcher
from .kraken import KrakenFetcher, KrakenInterval, KRAKEN_MAX_DATAPOINTS

__all__ = [
    "BaseFetcher",
    "KrakenFetcher",
    "KrakenInterval",
    "KRAKEN_MAX_DATAPOINTS"
]
