"""
Supported Pair Registry

Explicit lookup table from pair identifiers to pair metadata. Unknown
identifiers raise PairNotFound instead of resolving to a default pair.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from .exceptions import PairNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pair:
    """Tradable asset pair."""
    name: str                    # series key namespace, e.g. "ETH-USDC"
    fallback_name: str           # pair code on the fallback OHLC source, e.g. "ETHUSDC"
    base: Optional[str] = None
    quote: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PairRegistry:
    """Read-only table of supported pairs keyed by identifier."""

    def __init__(self, pairs: Iterable[Pair] = ()):
        self._pairs: Dict[str, Pair] = {}
        for pair in pairs:
            key = self._normalize(pair.name)
            if key in self._pairs:
                raise ValueError(f"duplicate pair identifier: {pair.name}")
            self._pairs[key] = pair

    @staticmethod
    def _normalize(identifier: str) -> str:
        return identifier.strip().upper()

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> 'PairRegistry':
        pairs = []
        for record in records:
            try:
                pairs.append(Pair(
                    name=record['name'],
                    fallback_name=record['fallback_name'],
                    base=record.get('base'),
                    quote=record.get('quote'),
                ))
            except KeyError as e:
                raise ValueError(f"pair record missing field {e}: {record}") from e
        return cls(pairs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'PairRegistry':
        """Load the registry from a JSON array of pair records."""
        path = Path(path)
        with path.open(encoding='utf-8') as f:
            records = json.load(f)
        registry = cls.from_records(records)
        logger.info(f"Loaded {len(registry)} pairs from {path}")
        return registry

    def get(self, identifier: str) -> Pair:
        try:
            return self._pairs[self._normalize(identifier)]
        except KeyError:
            raise PairNotFound(identifier) from None

    def __contains__(self, identifier: str) -> bool:
        return self._normalize(identifier) in self._pairs

    def __iter__(self) -> Iterator[Pair]:
        return iter(self._pairs.values())

    def __len__(self) -> int:
        return len(self._pairs)

    def names(self) -> List[str]:
        return [pair.name for pair in self._pairs.values()]
