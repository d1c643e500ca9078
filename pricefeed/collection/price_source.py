"""
Price sources for the collection job
"""

import logging
from abc import ABC, abstractmethod

from ..exceptions import PriceSourceError, UpstreamError
from ..fetchers import BaseFetcher
from ..pairs import Pair

logger = logging.getLogger(__name__)


class PriceSource(ABC):
    """Produces one current price per pair per collection cycle."""

    @abstractmethod
    async def quote(self, pair: Pair) -> float:
        """
        Current price of ``pair``.

        Raises:
            PriceSourceError: the price could not be obtained
        """
        pass


class TickerPriceSource(PriceSource):
    """Quotes the last trade price from a fetcher's ticker endpoint."""

    def __init__(self, fetcher: BaseFetcher):
        self.fetcher = fetcher

    async def quote(self, pair: Pair) -> float:
        try:
            ticker = await self.fetcher.fetch_realtime(pair.fallback_name)
        except UpstreamError as e:
            raise PriceSourceError(f"quote for {pair.name} failed: {e}") from e

        price = ticker.get('price')
        if price is None or price <= 0:
            raise PriceSourceError(f"quote for {pair.name} returned no usable price: {price!r}")
        return float(price)
