"""
Basic setup verification tests
"""

import json
import pytest
from pathlib import Path

from config.settings import Settings, settings
from pricefeed.pairs import PairRegistry
from pricefeed.exceptions import PairNotFound

project_root = Path(__file__).parent.parent


def test_required_files():
    """Test that all required files exist"""
    required_files = [
        'main.py',
        'pairs.json',
        'pyproject.toml',
        '.env.example',
        'config/settings.py',
        'api/prices.py',
    ]

    for file_path in required_files:
        assert (project_root / file_path).exists(), f"File {file_path} does not exist"


def test_settings_defaults():
    """Test that settings can be imported and contain required values"""
    assert settings.app_name == "PriceFeed"
    assert isinstance(settings.collection_interval_seconds, int)

    defaults = Settings(_env_file=None)
    assert defaults.collection_interval_seconds == 300
    assert defaults.max_datapoints == 720
    assert defaults.fallback_max_samples == 720
    assert defaults.fallback_init_interval_minutes == 1440


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("COLLECTION_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6380/1")

    configured = Settings(_env_file=None)

    assert configured.collection_interval_seconds == 60
    assert configured.redis_url == "redis://cache:6380/1"


def test_pairs_file_loads():
    registry = PairRegistry.from_file(project_root / "pairs.json")

    assert len(registry) >= 1
    for pair in registry:
        assert pair.fallback_name


class TestPairRegistry:

    def test_lookup_is_normalized(self, registry, eth_pair):
        assert registry.get(" eth-usdc ") == eth_pair
        assert "Btc-Usdc" in registry

    def test_unknown_pair(self, registry):
        with pytest.raises(PairNotFound):
            registry.get("DOGE-USDC")

    def test_duplicates_rejected(self):
        records = [
            {"name": "ETH-USDC", "fallback_name": "ETHUSDC"},
            {"name": "eth-usdc", "fallback_name": "ETHUSDC"},
        ]
        with pytest.raises(ValueError):
            PairRegistry.from_records(records)

    def test_missing_field_rejected(self):
        with pytest.raises(ValueError):
            PairRegistry.from_records([{"name": "ETH-USDC"}])

    def test_from_file(self, tmp_path):
        path = tmp_path / "pairs.json"
        path.write_text(json.dumps([{"name": "SOL-USD", "fallback_name": "SOLUSD", "base": "SOL"}]))

        registry = PairRegistry.from_file(path)

        assert registry.names() == ["SOL-USD"]
        assert registry.get("sol-usd").base == "SOL"
