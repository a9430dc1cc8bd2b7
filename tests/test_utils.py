"""
Tests for configuration and display formatting.
"""

import os
import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils import (
    Config,
    format_area,
    format_date,
    format_distance,
    format_percent,
    format_price,
)


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in ("PORT", "DEBUG", "MIN_ALPHA_PERCENT", "DEFAULT_BUYER_NATIONALITY"):
            monkeypatch.delenv(name, raising=False)

        config = Config.load()

        assert config.port == 8000
        assert config.debug is False
        assert config.min_alpha_percent == 20.0
        assert config.default_buyer_nationality == "UNKNOWN"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("DEBUG", "TRUE")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DATA_DIR", "/srv/fve")
        monkeypatch.setenv("DEFAULT_BUYER_NATIONALITY", "fr")

        config = Config.load()

        assert config.port == 9000
        assert config.debug is True
        assert config.log_level == "DEBUG"
        assert config.default_buyer_nationality == "FR"
        assert config.properties_path == os.path.join("/srv/fve", "properties.json")

    def test_to_dict(self):
        data = Config().to_dict()

        assert set(data) >= {"host", "port", "data_dir", "cache_ttl_seconds", "min_alpha_percent"}


class TestFormatting:

    def test_price(self):
        assert format_price(2_500_000) == "2 500 000 MAD"
        assert format_price(2_500_000, compact=True) == "2.5M MAD"
        assert format_price(850_000, compact=True) == "850K MAD"
        assert format_price(500, compact=True) == "500 MAD"

    def test_area(self):
        assert format_area(1200) == "1 200 m²"

    def test_percent(self):
        assert format_percent(12.345) == "12.3%"
        assert format_percent(-5, decimals=0) == "-5%"

    def test_distance(self):
        assert format_distance(0.45) == "450m"
        assert format_distance(12) == "12.0km"

    def test_date(self):
        assert format_date(date(2024, 6, 1)) == "01 Jun 2024"
        assert format_date("2024-06-01") == "01 Jun 2024"
