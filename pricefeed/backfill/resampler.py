"""
Linear Resampling

Converts a coarse series to a finer interval by linear interpolation between
consecutive points. Interpolated datapoints carry only a price and are not
tagged as synthetic.
"""

import logging
from typing import List, Sequence

from ..exceptions import InvalidIntervalRatio
from ..models import Datapoint

logger = logging.getLogger(__name__)


def lerp(a: float, b: float, amount: float) -> float:
    return (1.0 - amount) * a + amount * b


def resample(points: Sequence[Datapoint],
             source_interval: int,
             target_interval: int) -> List[Datapoint]:
    """
    Resample ``points`` from ``source_interval`` to ``target_interval``.

    Each adjacent pair ``(p, p_next)`` yields ``p`` followed by ``steps - 1``
    interpolated points at ``t = k / steps``; the last input point is appended
    once at the end, so ``n`` points become ``(n - 1) * steps + 1``.

    Raises:
        InvalidIntervalRatio: source is not a positive multiple of target
    """
    if target_interval <= 0 or source_interval <= 0 or source_interval % target_interval:
        raise InvalidIntervalRatio(source_interval, target_interval)

    steps = source_interval // target_interval
    points = list(points)
    if len(points) < 2 or steps == 1:
        return points

    output: List[Datapoint] = []
    for point, next_point in zip(points, points[1:]):
        output.append(point)
        for k in range(1, steps):
            t = k / steps
            output.append(Datapoint(
                price=lerp(point.price, next_point.price, t),
                timestamp=int(round(lerp(point.timestamp, next_point.timestamp, t)))
            ))
    output.append(points[-1])

    logger.debug(f"Resampled {len(points)} points to {len(output)} ({steps} steps)")
    return output
