"""Pydantic Settings configuration models.

3-tier config hierarchy (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (e.g., CRYPTODASH_CACHE__MARKETS_TTL_MS=15000)

Indicator periods are not configurable here: they live in the read-only
timeframe tables of cryptodash.engine.timeframes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_CURRENCIES = frozenset({"usd", "eur", "gbp", "jpy"})
VALID_TIMEFRAME_KEYS = frozenset({"1", "7", "30", "365"})
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})


class UpstreamConfig(BaseModel):
    """Third-party API endpoints, timeouts and retry policy."""

    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: str = ""
    coinbase_base_url: str = "https://api.exchange.coinbase.com"
    timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_backoff_ms: int = Field(default=1000, ge=0, le=30_000)


class CacheConfig(BaseModel):
    """Per-resource TTLs (milliseconds) and the per-cache entry cap."""

    markets_ttl_ms: int = Field(default=30_000, ge=0)
    history_ttl_ms: int = Field(default=300_000, ge=0)
    ohlc_ttl_ms: int = Field(default=60_000, ge=0)
    search_ttl_ms: int = Field(default=3_600_000, ge=0)
    max_entries: int | None = Field(default=512, ge=1)


class FreshnessConfig(BaseModel):
    """Thresholds for the freshness and drift verdicts."""

    coins_list_threshold_ms: int = Field(default=60_000, ge=0)
    chart_data_threshold_ms: int = Field(default=300_000, ge=0)
    max_timestamp_drift_ms: int = Field(default=120_000, ge=0)
    max_price_drift_pct: float = Field(default=1.0, ge=0.0, le=100.0)


class DisplayConfig(BaseModel):
    """Defaults for callers that omit query parameters."""

    default_currency: str = "usd"
    default_per_page: int = Field(default=100, ge=1, le=250)
    default_timeframe: str = "7"
    search_default_limit: int = Field(default=50, ge=1)
    search_result_limit: int = Field(default=20, ge=1)

    @field_validator("default_currency")
    @classmethod
    def validate_default_currency(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_CURRENCIES:
            raise ValueError(
                f"default_currency must be one of {sorted(VALID_CURRENCIES)}, got {v}"
            )
        return v

    @field_validator("default_timeframe")
    @classmethod
    def validate_default_timeframe(cls, v: str) -> str:
        if v not in VALID_TIMEFRAME_KEYS:
            raise ValueError(
                f"default_timeframe must be one of "
                f"{sorted(VALID_TIMEFRAME_KEYS, key=int)}, got {v}"
            )
        return v


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Env var examples:
        CRYPTODASH_LOG_LEVEL=DEBUG
        CRYPTODASH_UPSTREAM__COINGECKO_API_KEY=your-key
        CRYPTODASH_CACHE__MAX_ENTRIES=1024
        CRYPTODASH_DISPLAY__DEFAULT_CURRENCY=eur
    """

    model_config = SettingsConfigDict(
        env_prefix="CRYPTODASH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    upstream: UpstreamConfig = UpstreamConfig()
    cache: CacheConfig = CacheConfig()
    freshness: FreshnessConfig = FreshnessConfig()
    display: DisplayConfig = DisplayConfig()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v}"
            )
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v}"
            )
        return v
