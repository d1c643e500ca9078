"""
Test Suite for the backfill coordinator

The fallback fetcher is an AsyncMock returning OHLC frames; the store is
backed by fakeredis.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

import pandas as pd

from pricefeed.backfill import BackfillCoordinator, GapDetector, deduplicate
from pricefeed.exceptions import FallbackUnavailable
from pricefeed.fetchers import KrakenInterval
from pricefeed.models import Datapoint

INTERVAL = 300
T0 = 1_700_000_100           # aligned to 5 and 15 minutes
DAY = 86400
D = T0 - (T0 % DAY)          # day candle at or before T0


def ohlc_frame(rows):
    """Frame with the columns the coordinator reads, from (timestamp, close) rows."""
    return pd.DataFrame({
        'timestamp': [ts for ts, _ in rows],
        'close': [close for _, close in rows],
    })


def mock_fetcher(frames=None, error=None):
    fetcher = MagicMock()
    if error is not None:
        fetcher.fetch_ohlc = AsyncMock(side_effect=error)
    else:
        fetcher.fetch_ohlc = AsyncMock(side_effect=lambda symbol, minutes: frames[minutes])
    return fetcher


async def timestamps(store, pair):
    return [p.timestamp for p in await store.range(pair.name, 0, -1)]


def test_deduplicate_keeps_first_occurrence():
    points = [
        Datapoint(price=2.0, timestamp=600),
        Datapoint(price=1.0, timestamp=300),
        Datapoint(price=3.0, timestamp=600),
    ]
    assert deduplicate(points) == [Datapoint(price=1.0, timestamp=300), Datapoint(price=2.0, timestamp=600)]


class TestIntervalSelection:

    def test_candidates_are_multiples_of_native(self, store):
        coordinator = BackfillCoordinator(store, mock_fetcher({}), 900)
        assert coordinator.candidate_intervals[0] is KrakenInterval.FIFTEEN_MINUTES
        assert KrakenInterval.FIVE_MINUTES not in coordinator.candidate_intervals

    def test_no_candidate_raises(self, store):
        with pytest.raises(ValueError):
            BackfillCoordinator(store, mock_fetcher({}), 7)

    def test_finest_covering_interval(self, store):
        coordinator = BackfillCoordinator(store, mock_fetcher({}), INTERVAL)

        assert coordinator.select_fallback_interval(600) == (KrakenInterval.FIVE_MINUTES, True)
        assert coordinator.select_fallback_interval(300 * 720) == (KrakenInterval.FIVE_MINUTES, True)
        assert coordinator.select_fallback_interval(300 * 720 + 1) == (KrakenInterval.FIFTEEN_MINUTES, True)

    def test_outage_beyond_coverage(self, store):
        coordinator = BackfillCoordinator(store, mock_fetcher({}), INTERVAL)

        interval, covered = coordinator.select_fallback_interval(21600 * 60 * 720 + 1)

        assert interval is KrakenInterval.FIFTEEN_DAYS
        assert covered is False


class TestBackfill:

    @pytest.mark.asyncio
    async def test_two_slot_gap_round_trip(self, store, eth_pair):
        await store.append(eth_pair.name, Datapoint(price=100.0, timestamp=T0))
        fetcher = mock_fetcher({5: ohlc_frame([
            (T0, 100.0), (T0 + 300, 101.0), (T0 + 600, 102.0), (T0 + 900, 103.0)
        ])})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL)
        gap = await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 900)

        written = await coordinator.backfill(eth_pair, gap)

        assert written == [Datapoint(price=101.0, timestamp=T0 + 300), Datapoint(price=102.0, timestamp=T0 + 600)]
        assert await timestamps(store, eth_pair) == [T0, T0 + 300, T0 + 600]
        fetcher.fetch_ohlc.assert_awaited_once_with("ETHUSDC", 5)

        # the gap is closed; a second pass writes nothing
        assert await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 900) is None

    @pytest.mark.asyncio
    async def test_unmatched_slots_are_dropped(self, store, eth_pair):
        await store.append(eth_pair.name, Datapoint(price=100.0, timestamp=T0))
        fetcher = mock_fetcher({5: ohlc_frame([(T0, 100.0), (T0 + 300, 101.0)])})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL)
        gap = await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 900)

        written = await coordinator.backfill(eth_pair, gap)

        assert [p.timestamp for p in written] == [T0 + 300]
        assert await timestamps(store, eth_pair) == [T0, T0 + 300]

    @pytest.mark.asyncio
    async def test_fetch_failure_writes_nothing(self, store, eth_pair):
        await store.append(eth_pair.name, Datapoint(price=100.0, timestamp=T0))
        coordinator = BackfillCoordinator(store, mock_fetcher(error=FallbackUnavailable("down")), INTERVAL)
        gap = await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 900)

        with pytest.raises(FallbackUnavailable):
            await coordinator.backfill(eth_pair, gap)

        assert await store.length(eth_pair.name) == 1

    @pytest.mark.asyncio
    async def test_coarse_fallback_is_resampled(self, store, eth_pair):
        await store.append(eth_pair.name, Datapoint(price=100.0, timestamp=T0))
        fetcher = mock_fetcher({15: ohlc_frame([(T0, 100.0), (T0 + 900, 130.0)])})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL, max_samples=1)
        gap = await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 1200)

        written = await coordinator.backfill(eth_pair, gap)

        fetcher.fetch_ohlc.assert_awaited_once_with("ETHUSDC", 15)
        assert [p.timestamp for p in written] == [T0 + 300, T0 + 600, T0 + 900]
        assert [p.price for p in written] == pytest.approx([110.0, 120.0, 130.0])

    @pytest.mark.asyncio
    async def test_never_rewrites_stored_slots(self, store, eth_pair):
        await store.append(eth_pair.name, Datapoint(price=100.0, timestamp=T0))
        fetcher = mock_fetcher({5: ohlc_frame([(T0 + 300, 101.0), (T0 + 600, 102.0)])})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL)
        gap = await GapDetector(store, INTERVAL).detect(eth_pair.name, now=T0 + 900)

        # tail moved on after detection
        await store.append(eth_pair.name, Datapoint(price=101.5, timestamp=T0 + 300))
        written = await coordinator.backfill(eth_pair, gap)

        assert [p.timestamp for p in written] == [T0 + 600]
        assert await timestamps(store, eth_pair) == [T0, T0 + 300, T0 + 600]


class TestInitialize:

    @pytest.mark.asyncio
    async def test_merges_long_horizon_history(self, store, eth_pair):
        native = [(T0 + i * INTERVAL, 200.0 + i) for i in range(11)]
        daily = [(D - DAY, 50.0), (D, 60.0), (D + DAY, 70.0)]
        fetcher = mock_fetcher({5: ohlc_frame(native), 1440: ohlc_frame(daily)})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL)

        written = await coordinator.initialize(eth_pair, now=T0 + 10 * INTERVAL + 17)

        stored = await timestamps(store, eth_pair)
        assert stored == [p.timestamp for p in written]
        assert stored[0] == D - DAY
        # still-forming candle is not stored
        assert stored[-1] == T0 + 9 * INTERVAL
        # contiguous native grid with no duplicates at the seam
        assert all(b - a == INTERVAL for a, b in zip(stored, stored[1:]))
        assert len(stored) == (T0 - (D - DAY)) // INTERVAL + 10

        prices = {p.timestamp: p.price for p in written}
        assert prices[D] == 60.0
        assert prices[T0] == 200.0

    @pytest.mark.asyncio
    async def test_without_long_horizon_fetch(self, store, eth_pair):
        native = [(T0 + i * INTERVAL, 200.0 + i) for i in range(3)]
        fetcher = mock_fetcher({5: ohlc_frame(native)})
        coordinator = BackfillCoordinator(store, fetcher, INTERVAL, init_interval=KrakenInterval.FIVE_MINUTES)

        written = await coordinator.initialize(eth_pair, now=T0 + 3 * INTERVAL)

        assert [p.timestamp for p in written] == [T0, T0 + 300, T0 + 600]
        fetcher.fetch_ohlc.assert_awaited_once_with("ETHUSDC", 5)

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_series_empty(self, store, eth_pair):
        coordinator = BackfillCoordinator(store, mock_fetcher(error=FallbackUnavailable("down")), INTERVAL)

        with pytest.raises(FallbackUnavailable):
            await coordinator.initialize(eth_pair, now=T0)

        assert await store.length(eth_pair.name) == 0
