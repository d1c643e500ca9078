"""
Series storage

Redis-backed adapter holding each pair's prices and timestamps as two
parallel, append-only lists.
"""

from .series_store import SeriesStore, prices_key, timestamps_key

__all__ = [
    "SeriesStore",
    "prices_key",
    "timestamps_key",
]
