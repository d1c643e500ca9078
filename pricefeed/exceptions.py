"""
PriceFeed Error Taxonomy

Typed exceptions shared by the store adapter, fetchers, backfill and query
components. Transport errors (Redis, HTTP) are translated into these at the
component boundary so callers only ever handle one hierarchy.

- ValidationError: caller supplied a bad pair, interval or amount
- UpstreamError: price source or fallback source unreachable or malformed
- StoreError: key/value store unreachable or write unconfirmed
- DataIntegrityError: price/timestamp sequences out of alignment
- EmptySeries: the pair has no stored data yet
"""

from typing import Optional


class PriceFeedError(Exception):
    """Base class for all PriceFeed errors."""
    pass


# Validation errors (user-caused, reported verbatim)

class ValidationError(PriceFeedError):
    """Invalid request parameters."""
    pass


class PairNotFound(ValidationError):
    """Raised when a pair identifier is not in the registry."""

    def __init__(self, pair: str):
        self.pair = pair
        super().__init__(f"unsupported pair: {pair}")


class InvalidInterval(ValidationError):
    """Raised when a query interval does not fit the collection interval."""
    pass


class IntervalTooSmall(InvalidInterval):
    def __init__(self, interval: int, native_interval: int):
        self.interval = interval
        self.native_interval = native_interval
        super().__init__(
            f"interval {interval}s is smaller than collection interval {native_interval}s"
        )


class IntervalMisaligned(InvalidInterval):
    def __init__(self, interval: int, native_interval: int):
        self.interval = interval
        self.native_interval = native_interval
        super().__init__(
            f"interval {interval}s is not a multiple of collection interval {native_interval}s"
        )


class InvalidAmount(ValidationError):
    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"amount must be a positive integer, got {amount}")


class InvalidIntervalRatio(ValidationError):
    """Raised when a source interval is not a clean multiple of the target interval."""

    def __init__(self, source_interval: int, target_interval: int):
        self.source_interval = source_interval
        self.target_interval = target_interval
        super().__init__(
            f"source interval {source_interval}s is not a positive multiple of "
            f"target interval {target_interval}s"
        )


# Upstream errors

class UpstreamError(PriceFeedError):
    """External price or fallback source failed."""
    pass


class PriceSourceError(UpstreamError):
    pass


class FallbackUnavailable(UpstreamError):
    """Fallback source unreachable, timed out or reported an error."""
    pass


class FallbackFormatError(UpstreamError):
    """Fallback source returned a payload with an unexpected shape."""
    pass


# Store errors

class StoreError(PriceFeedError):
    pass


class StoreUnavailable(StoreError):
    """Store connection failed, timed out or a write was not confirmed."""
    pass


# Integrity

class DataIntegrityError(PriceFeedError):
    """Price and timestamp sequences of a pair have different lengths."""

    def __init__(self, pair: str, prices_length: int, timestamps_length: int,
                 message: Optional[str] = None):
        self.pair = pair
        self.prices_length = prices_length
        self.timestamps_length = timestamps_length
        super().__init__(
            message or
            f"series for {pair} out of alignment: "
            f"{prices_length} prices vs {timestamps_length} timestamps"
        )


class EmptySeries(PriceFeedError):
    """The pair has no stored datapoints yet."""

    def __init__(self, pair: str):
        self.pair = pair
        super().__init__(f"no datapoints stored for {pair}")
