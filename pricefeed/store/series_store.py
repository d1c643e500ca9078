"""
Redis Series Store Adapter

Each pair's series is kept as two parallel Redis lists, ``{pair}:prices`` and
``{pair}:timestamps``, appended to only at the tail. This adapter is the only
component that touches those lists, and it only exposes paired operations so
the two sequences cannot be written independently.

Reads are expressed as tail-relative offsets using Redis list semantics:
-1 is the most recent element and more negative offsets reach further back.
There is no lookup by timestamp; callers translate time into offsets.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import DataIntegrityError, EmptySeries, StoreUnavailable
from ..models import Datapoint

logger = logging.getLogger(__name__)


def prices_key(pair: str) -> str:
    return f"{pair}:prices"


def timestamps_key(pair: str) -> str:
    return f"{pair}:timestamps"


class SeriesStore:
    """
    Paired append/read access to per-pair price series.

    Writes push both sequences inside one MULTI/EXEC transaction and compare
    the resulting list lengths, so a misaligned series is reported at write
    time. Reads fetch both sequences and their lengths in one transaction;
    a length mismatch is logged and the result truncated to the shorter read.
    """

    def __init__(self, client: aioredis.Redis):
        self.redis = client

    @classmethod
    def from_url(cls,
                 url: str,
                 socket_timeout: Optional[float] = 5.0,
                 connect_timeout: Optional[float] = 5.0) -> 'SeriesStore':
        """Create a store backed by a pooled Redis client with bounded timeouts."""
        client = aioredis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
        )
        logger.info(f"SeriesStore configured for {url}")
        return cls(client)

    async def close(self) -> None:
        await self.redis.aclose()

    @asynccontextmanager
    async def _store_errors(self, operation: str, pair: str):
        """Translate transport failures into StoreUnavailable."""
        try:
            yield
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Store {operation} failed for {pair}: {e}")
            raise StoreUnavailable(f"store {operation} failed for {pair}: {e}") from e

    # Writes

    async def append(self, pair: str, datapoint: Datapoint) -> int:
        """Append one datapoint to the tail of both sequences."""
        return await self.append_many(pair, [datapoint])

    async def append_many(self, pair: str, datapoints: Iterable[Datapoint]) -> int:
        """
        Append datapoints, in the given order, to the tail of both sequences.

        Returns:
            New series length

        Raises:
            StoreUnavailable: store unreachable or write not confirmed
            DataIntegrityError: sequences have different lengths after the write
        """
        datapoints = list(datapoints)
        if not datapoints:
            return await self.length(pair)

        prices = [repr(float(d.price)) for d in datapoints]
        timestamps = [str(int(d.timestamp)) for d in datapoints]

        async with self._store_errors('append', pair):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.rpush(prices_key(pair), *prices)
                pipe.rpush(timestamps_key(pair), *timestamps)
                results = await pipe.execute()

        if len(results) != 2 or not all(isinstance(r, int) for r in results):
            raise StoreUnavailable(f"append for {pair} was not confirmed: {results!r}")

        prices_length, timestamps_length = results
        if prices_length != timestamps_length:
            error = DataIntegrityError(pair, prices_length, timestamps_length)
            logger.error(f"Append left series misaligned: {error}")
            raise error

        logger.debug(f"Appended {len(datapoints)} datapoints to {pair} (length {timestamps_length})")
        return timestamps_length

    # Reads

    async def last_timestamp(self, pair: str) -> int:
        """Timestamp at the tail of the series; raises EmptySeries if none."""
        return await self._timestamp_at(pair, -1)

    async def first_timestamp(self, pair: str) -> int:
        """Timestamp at the head of the series; raises EmptySeries if none."""
        return await self._timestamp_at(pair, 0)

    async def _timestamp_at(self, pair: str, index: int) -> int:
        async with self._store_errors('lindex', pair):
            value = await self.redis.lindex(timestamps_key(pair), index)
        if value is None:
            raise EmptySeries(pair)
        return int(value)

    async def length(self, pair: str) -> int:
        async with self._store_errors('llen', pair):
            return int(await self.redis.llen(timestamps_key(pair)))

    async def lengths(self, pair: str) -> Dict[str, int]:
        async with self._store_errors('llen', pair):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.llen(prices_key(pair))
                pipe.llen(timestamps_key(pair))
                prices_length, timestamps_length = await pipe.execute()
        return {'prices': int(prices_length), 'timestamps': int(timestamps_length)}

    async def check_integrity(self, pair: str) -> None:
        """Raise DataIntegrityError if the two sequences differ in length."""
        lengths = await self.lengths(pair)
        if lengths['prices'] != lengths['timestamps']:
            raise DataIntegrityError(pair, lengths['prices'], lengths['timestamps'])

    async def range(self,
                    pair: str,
                    start_offset: int,
                    end_offset: int,
                    strict: bool = False) -> List[Datapoint]:
        """
        Read datapoints between two tail-relative offsets (inclusive).

        Args:
            pair: Pair identifier
            start_offset: Oldest offset to read, e.g. -10
            end_offset: Newest offset to read, e.g. -1 for the tail
            strict: Raise DataIntegrityError on misalignment instead of truncating

        Returns:
            Datapoints in store order (oldest first)
        """
        async with self._store_errors('range', pair):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.llen(prices_key(pair))
                pipe.llen(timestamps_key(pair))
                pipe.lrange(prices_key(pair), start_offset, end_offset)
                pipe.lrange(timestamps_key(pair), start_offset, end_offset)
                prices_length, timestamps_length, prices, timestamps = await pipe.execute()

        if prices_length != timestamps_length:
            error = DataIntegrityError(pair, int(prices_length), int(timestamps_length))
            if strict:
                raise error
            logger.error(f"{error}; truncating read to the first "
                         f"{min(prices_length, timestamps_length)} elements of both sequences")
            prices, timestamps = await self._aligned_range(
                pair, min(int(prices_length), int(timestamps_length)), start_offset, end_offset
            )

        return [
            Datapoint(price=float(price), timestamp=int(timestamp))
            for price, timestamp in zip(prices, timestamps)
        ]

    async def _aligned_range(self,
                             pair: str,
                             length: int,
                             start_offset: int,
                             end_offset: int) -> Tuple[List[str], List[str]]:
        """
        Read both sequences as if each held only its first ``length`` elements.

        Tail offsets are resolved against ``length`` into head indices, so the
        surplus tail of the longer list is ignored.
        """
        start = max(0, length + start_offset) if start_offset < 0 else start_offset
        end = length + end_offset if end_offset < 0 else min(end_offset, length - 1)
        if length == 0 or end < start:
            return [], []

        async with self._store_errors('range', pair):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.lrange(prices_key(pair), start, end)
                pipe.lrange(timestamps_key(pair), start, end)
                prices, timestamps = await pipe.execute()
        return prices, timestamps


    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Store ping failed: {e}")
            return False
