"""
Base Fetcher Abstract Class

Foundation for the external market data sources the continuity engine falls
back to. Provides the shared aiohttp session lifecycle, bounded request
timeouts, a concurrency cap, request metrics and translation of transport
failures into the PriceFeed upstream error types.

Requests are never retried here: a timeout is the same failure class as a
connection error, and retrying is left to the next scheduled cycle.
"""

import asyncio
import time
import logging
import statistics
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
import aiohttp
import pandas as pd

from ..exceptions import FallbackFormatError, FallbackUnavailable


logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """
    Abstract base class for market data fetchers.

    Subclasses implement the source-specific endpoints and response parsing;
    this class owns the HTTP session and error translation.
    """

    def __init__(self,
                 timeout: float = 10.0,
                 max_concurrent_requests: int = 4,
                 user_agent: str = 'PriceFeed/1.0'):
        """
        Initialize base fetcher.

        Args:
            timeout: Total request timeout in seconds
            max_concurrent_requests: Cap on in-flight requests across pairs
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.session: Optional[aiohttp.ClientSession] = None
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Metrics and monitoring
        self.request_count = 0
        self.error_count = 0
        self.response_times: List[float] = []

        logger.info(f"{self.__class__.__name__} initialized with timeout={timeout}s")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()

    async def start(self):
        """Start the fetcher (create HTTP session)."""
        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit=20,
                ttl_dns_cache=300,
                enable_cleanup_closed=True
            )

            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={'User-Agent': self.user_agent}
            )

            logger.info("HTTP session created")

    async def stop(self):
        """Stop the fetcher (close HTTP session)."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("HTTP session closed")

    async def _make_request(self,
                            method: str,
                            url: str,
                            **kwargs) -> aiohttp.ClientResponse:
        """
        Make an HTTP request through the shared session.

        Raises:
            FallbackUnavailable: Connection error or timeout
        """
        if not self.session:
            await self.start()

        start_time = time.monotonic()
        async with self._semaphore:
            try:
                response = await self.session.request(method, url, **kwargs)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.error_count += 1
                logger.error(f"Request to {url} failed: {e!r}")
                raise FallbackUnavailable(f"request to {url} failed: {e!r}") from e

        self.request_count += 1
        self.response_times.append(time.monotonic() - start_time)
        if len(self.response_times) > 100:
            self.response_times = self.response_times[-100:]

        return response

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a JSON document.

        Raises:
            FallbackUnavailable: Transport failure or non-200 status
            FallbackFormatError: Body is not valid JSON
        """
        response = await self._make_request('GET', url, params=params)

        try:
            if response.status != 200:
                error_text = await response.text()
                self.error_count += 1
                raise FallbackUnavailable(
                    f"{url} returned HTTP {response.status}: {error_text[:200]}"
                )
            return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.error_count += 1
            raise FallbackUnavailable(f"reading response from {url} failed: {e!r}") from e
        except ValueError as e:
            self.error_count += 1
            raise FallbackFormatError(f"{url} returned invalid JSON: {e}") from e

    # Abstract methods that must be implemented by subclasses

    @abstractmethod
    async def fetch_realtime(self, symbol: str) -> Dict[str, Any]:
        """
        Fetch the latest ticker for a symbol.

        Returns:
            Dictionary containing at least 'symbol' and 'price'
        """
        pass

    @abstractmethod
    async def fetch_ohlc(self, symbol: str, interval_minutes: int) -> pd.DataFrame:
        """
        Fetch the most recent OHLC candles for a symbol.

        Returns:
            DataFrame with integer 'timestamp' (Unix seconds) and float
            'open', 'high', 'low', 'close' columns, oldest first
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on the data source."""
        pass

    def get_metrics(self) -> Dict[str, Any]:
        """Request counters for the service health report."""
        latencies = self.response_times
        return {
            'source': self.__class__.__name__,
            'requests': self.request_count,
            'errors': self.error_count,
            'median_latency': statistics.median(latencies) if latencies else None
        }
