"""
Range queries over stored series
"""

from .range_query import RangeQueryEngine, MAX_DATAPOINTS

__all__ = [
    "RangeQueryEngine",
    "MAX_DATAPOINTS"
]
