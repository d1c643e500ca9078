"""
Series Continuity and Backfill

Contains components for detecting collection gaps and repairing them from a
lower-resolution fallback source.

Key Components:
- GapDetector: Missing slot timestamps since the last stored sample
- resample: Linear interpolation of a coarse series to a finer interval
- BackfillCoordinator: Fetch, resample, match and write gap repairs
"""

from .gap_detector import (
    GapDetector,
    DataGap,
    align_timestamp,
    missing_timestamps
)

from .resampler import resample, lerp

from .coordinator import BackfillCoordinator, deduplicate

__all__ = [
    # Gap Detection
    "GapDetector",
    "DataGap",
    "align_timestamp",
    "missing_timestamps",

    # Resampling
    "resample",
    "lerp",

    # Coordination
    "BackfillCoordinator",
    "deduplicate"
]
