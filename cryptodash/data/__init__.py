"""Data layer: freshness checks, TTL caches and the market data service."""

from cryptodash.data.cache import CachedResource, CachedResult, CacheEntry, TTLCache
from cryptodash.data.freshness import (
    FreshnessInfo,
    FreshnessStatus,
    FreshnessSummary,
    PriceDrift,
    TimestampDrift,
    detect_price_drift,
    detect_timestamp_drift,
    evaluate_freshness,
    summarize_freshness,
)
from cryptodash.data.service import MarketDataService

__all__ = [
    "CacheEntry",
    "CachedResource",
    "CachedResult",
    "FreshnessInfo",
    "FreshnessStatus",
    "FreshnessSummary",
    "MarketDataService",
    "PriceDrift",
    "TTLCache",
    "TimestampDrift",
    "detect_price_drift",
    "detect_timestamp_drift",
    "evaluate_freshness",
    "summarize_freshness",
]
