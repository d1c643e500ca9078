"""
Shared fixtures for the PriceFeed test suite.
"""

import pytest
import pytest_asyncio
import fakeredis.aioredis as fakeredis

from pricefeed.models import Datapoint
from pricefeed.pairs import Pair, PairRegistry
from pricefeed.store import SeriesStore

INTERVAL = 300
T0 = 1_700_000_100  # aligned to INTERVAL


@pytest_asyncio.fixture
async def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def store(redis_client):
    return SeriesStore(redis_client)


@pytest.fixture
def eth_pair():
    return Pair(name="ETH-USDC", fallback_name="ETHUSDC", base="ETH", quote="USDC")


@pytest.fixture
def btc_pair():
    return Pair(name="BTC-USDC", fallback_name="XBTUSDC", base="BTC", quote="USDC")


@pytest.fixture
def registry(eth_pair, btc_pair):
    return PairRegistry([eth_pair, btc_pair])


def _make_series(count, start=T0, interval=INTERVAL, price=100.0, step=1.0):
    """Consecutive datapoints starting at ``start``."""
    return [
        Datapoint(price=price + i * step, timestamp=start + i * interval)
        for i in range(count)
    ]


@pytest.fixture
def make_series():
    return _make_series
