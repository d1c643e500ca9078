"""
Kraken Public API Fetcher

Fallback OHLC source for the continuity engine. Uses the public (unauthenticated)
REST endpoints:

- /0/public/OHLC   candles at one of a fixed set of intervals, at most 720 rows
- /0/public/Ticker latest trade price, used by the collection price source

Kraken replies with ``{"error": [...], "result": {...}}``. A non-empty error
array is reported as FallbackUnavailable; any other deviation from the
documented shape is FallbackFormatError.
"""

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from ..exceptions import FallbackFormatError, FallbackUnavailable
from .base_fetcher import BaseFetcher


logger = logging.getLogger(__name__)

KRAKEN_MAX_DATAPOINTS = 720

OHLC_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'vwap', 'volume', 'count']


class KrakenInterval(Enum):
    """OHLC intervals supported by Kraken, in minutes."""
    MINUTE = 1
    FIVE_MINUTES = 5
    FIFTEEN_MINUTES = 15
    HALF_HOUR = 30
    HOUR = 60
    FOUR_HOURS = 240
    DAY = 1440
    WEEK = 10080
    FIFTEEN_DAYS = 21600

    @property
    def seconds(self) -> int:
        return self.value * 60


class KrakenFetcher(BaseFetcher):
    """Kraken public REST API fetcher."""

    BASE_URL = "https://api.kraken.com"

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: float = 10.0,
                 max_concurrent_requests: int = 4):
        """
        Initialize Kraken fetcher.

        Args:
            base_url: API root, overridable for testing
            timeout: Request timeout in seconds
            max_concurrent_requests: Cap on in-flight requests
        """
        super().__init__(timeout=timeout, max_concurrent_requests=max_concurrent_requests)
        self.base_url = (base_url or self.BASE_URL).rstrip('/')

    def _result(self, data: Any, symbol: str) -> Any:
        """Unwrap the ``result`` entry for a pair, validating the envelope."""
        if not isinstance(data, dict) or 'error' not in data:
            raise FallbackFormatError("fallback response format was not correct: missing 'error'")

        errors = data['error']
        if not isinstance(errors, list):
            raise FallbackFormatError("fallback response format was not correct: 'error' is not a list")
        if errors:
            raise FallbackUnavailable(f"Kraken reported errors for {symbol}: {', '.join(map(str, errors))}")

        result = data.get('result')
        if not isinstance(result, dict):
            raise FallbackFormatError("fallback response format was not correct: missing 'result'")

        if symbol in result:
            return result[symbol]

        # Kraken answers with its canonical pair name (e.g. XETHZUSD for ETHUSD)
        candidates = [key for key in result if key != 'last']
        if len(candidates) == 1:
            logger.debug(f"Kraken answered {symbol} as {candidates[0]}")
            return result[candidates[0]]

        raise FallbackFormatError(f"fallback response format was not correct: no result for {symbol}")

    async def fetch_ohlc(self, symbol: str, interval_minutes: int) -> pd.DataFrame:
        """
        Fetch the most recent OHLC candles.

        Args:
            symbol: Kraken pair code
            interval_minutes: One of the KrakenInterval values

        Returns:
            DataFrame with OHLC_COLUMNS, oldest first
        """
        interval = KrakenInterval(interval_minutes)
        data = await self._get_json(
            f"{self.base_url}/0/public/OHLC",
            params={'pair': symbol, 'interval': interval.value}
        )
        rows = self._result(data, symbol)
        frame = self._parse_ohlc_response(rows)

        logger.debug(f"Fetched {len(frame)} {interval.name} candles for {symbol}")
        return frame

    def _parse_ohlc_response(self, rows: Any) -> pd.DataFrame:
        """Parse Kraken OHLC rows into a DataFrame."""
        if not isinstance(rows, list):
            raise FallbackFormatError("fallback response format was not correct: OHLC rows are not a list")

        records: List[Dict[str, Any]] = []
        try:
            for row in rows:
                records.append({
                    'timestamp': int(row[0]),
                    'open': float(row[1]),
                    'high': float(row[2]),
                    'low': float(row[3]),
                    'close': float(row[4]),
                    'vwap': float(row[5]),
                    'volume': float(row[6]),
                    'count': int(row[7]),
                })
        except (TypeError, ValueError, IndexError) as e:
            raise FallbackFormatError(f"fallback response format was not correct: {e}") from e

        frame = pd.DataFrame(records, columns=OHLC_COLUMNS)
        return frame.sort_values('timestamp', kind='stable').reset_index(drop=True)

    async def fetch_realtime(self, symbol: str) -> Dict[str, Any]:
        """Fetch the latest trade price from the ticker endpoint."""
        data = await self._get_json(f"{self.base_url}/0/public/Ticker", params={'pair': symbol})
        ticker = self._result(data, symbol)
        return self._parse_ticker_response(ticker, symbol)

    def _parse_ticker_response(self, ticker: Any, symbol: str) -> Dict[str, Any]:
        """Parse a Kraken ticker entry (``c`` is [last price, lot volume])."""
        try:
            return {
                'symbol': symbol,
                'price': float(ticker['c'][0]),
                'ask': float(ticker['a'][0]) if 'a' in ticker else None,
                'bid': float(ticker['b'][0]) if 'b' in ticker else None,
                'source': 'kraken_rest'
            }
        except (TypeError, ValueError, KeyError, IndexError) as e:
            raise FallbackFormatError(f"ticker response format was not correct: {e}") from e

    async def health_check(self) -> Dict[str, Any]:
        """Check the public server time endpoint."""
        start_time = time.time()
        try:
            data = await self._get_json(f"{self.base_url}/0/public/Time")
            result = self._result(data, 'unixtime') if isinstance(data, dict) else None
            return {
                'status': 'ok',
                'latency': time.time() - start_time,
                'server_time': result
            }
        except (FallbackUnavailable, FallbackFormatError) as e:
            return {
                'status': 'error',
                'error': str(e),
                'latency': time.time() - start_time
            }
