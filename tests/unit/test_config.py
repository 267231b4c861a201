"""Tests for configuration defaults, validation and env overrides."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cryptodash.config import AppConfig, CacheConfig, DisplayConfig, UpstreamConfig


class TestDefaultConfig:
    def test_default_config_loads(self, app_config: AppConfig) -> None:
        assert app_config.log_level == "INFO"
        assert app_config.log_format == "console"
        assert app_config.display.default_currency == "usd"
        assert app_config.display.default_timeframe == "7"

    def test_cache_ttls(self, app_config: AppConfig) -> None:
        cache = app_config.cache
        assert cache.markets_ttl_ms == 30_000
        assert cache.history_ttl_ms == 300_000
        assert cache.ohlc_ttl_ms == 60_000
        assert cache.search_ttl_ms == 3_600_000
        assert cache.max_entries == 512

    def test_upstream_retry_defaults(self, app_config: AppConfig) -> None:
        assert app_config.upstream.max_attempts == 3
        assert app_config.upstream.initial_backoff_ms == 1000
        assert app_config.upstream.coingecko_api_key == ""

    def test_freshness_defaults(self, app_config: AppConfig) -> None:
        fresh = app_config.freshness
        assert fresh.coins_list_threshold_ms == 60_000
        assert fresh.chart_data_threshold_ms == 300_000
        assert fresh.max_timestamp_drift_ms == 120_000
        assert fresh.max_price_drift_pct == 1.0


class TestEnvOverrides:
    def test_log_level_override(self, app_config: AppConfig) -> None:
        with patch.dict("os.environ", {"CRYPTODASH_LOG_LEVEL": "debug"}):
            assert AppConfig(_env_file=None).log_level == "DEBUG"

    def test_nested_override(self, app_config: AppConfig) -> None:
        env = {
            "CRYPTODASH_CACHE__MARKETS_TTL_MS": "15000",
            "CRYPTODASH_UPSTREAM__COINGECKO_API_KEY": "demo-key",
            "CRYPTODASH_DISPLAY__DEFAULT_CURRENCY": "EUR",
        }
        with patch.dict("os.environ", env):
            config = AppConfig(_env_file=None)
        assert config.cache.markets_ttl_ms == 15_000
        assert config.upstream.coingecko_api_key == "demo-key"
        assert config.display.default_currency == "eur"


class TestValidation:
    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError, match="log_level"):
            AppConfig(_env_file=None, log_level="LOUD")

    def test_invalid_log_format(self) -> None:
        with pytest.raises(ValidationError, match="log_format"):
            AppConfig(_env_file=None, log_format="xml")

    def test_invalid_currency(self) -> None:
        with pytest.raises(ValidationError, match="default_currency"):
            DisplayConfig(default_currency="doge")

    def test_invalid_timeframe(self) -> None:
        with pytest.raises(ValidationError, match="default_timeframe"):
            DisplayConfig(default_timeframe="90")

    def test_per_page_bounds(self) -> None:
        with pytest.raises(ValidationError):
            DisplayConfig(default_per_page=251)

    def test_max_attempts_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            UpstreamConfig(max_attempts=0)

    def test_max_entries_can_be_unbounded(self) -> None:
        assert CacheConfig(max_entries=None).max_entries is None

    def test_max_entries_positive(self) -> None:
        with pytest.raises(ValidationError):
            CacheConfig(max_entries=0)
