"""Freshness and drift checks for payloads served from the cache.

Pure functions: no shared state, no side effects. `now` defaults to the wall
clock at call time, so repeated calls on the same fetched_at flip from fresh
to stale as time passes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from cryptodash.utils.time import MS_PER_SECOND, format_age, now_ms

COINS_LIST_THRESHOLD_MS = 60_000
CHART_DATA_THRESHOLD_MS = 300_000
MAX_TIMESTAMP_DRIFT_MS = 120_000
# Tolerated disagreement between list price and chart price, in percent.
MAX_PRICE_DRIFT_PERCENT = 1.0


@dataclass(frozen=True)
class FreshnessInfo:
    is_fresh: bool
    age_ms: int
    age_sec: int
    age_formatted: str
    stale_reason: str | None = None


@dataclass(frozen=True)
class PriceDrift:
    drift_percent: float
    acceptable: bool


@dataclass(frozen=True)
class TimestampDrift:
    drift_ms: int
    acceptable: bool


class FreshnessStatus(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FreshnessSummary:
    status: FreshnessStatus
    message: str


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def evaluate_freshness(
    fetched_at: int,
    threshold_ms: int,
    now: int | None = None,
) -> FreshnessInfo:
    """Check whether data fetched at `fetched_at` is within `threshold_ms`.

    Fresh iff (now - fetched_at) <= threshold_ms.
    """
    current = now if now is not None else now_ms()
    age_ms = current - fetched_at
    age_sec = _round_half_up(age_ms / MS_PER_SECOND)
    is_fresh = age_ms <= threshold_ms
    age_formatted = format_age(age_sec)
    stale_reason = None
    if not is_fresh:
        stale_reason = (
            f"Data is {age_formatted} old "
            f"(threshold {threshold_ms / MS_PER_SECOND:g}s)"
        )
    return FreshnessInfo(
        is_fresh=is_fresh,
        age_ms=age_ms,
        age_sec=age_sec,
        age_formatted=age_formatted,
        stale_reason=stale_reason,
    )


def detect_price_drift(
    list_price: float,
    chart_latest_price: float,
    max_drift_percent: float = MAX_PRICE_DRIFT_PERCENT,
) -> PriceDrift:
    """Relative difference between two prices, as a percent of `list_price`.

    A zero `list_price` yields zero drift.
    """
    if list_price == 0:
        return PriceDrift(drift_percent=0.0, acceptable=True)
    drift_percent = abs((list_price - chart_latest_price) / list_price) * 100
    return PriceDrift(
        drift_percent=drift_percent,
        acceptable=drift_percent <= max_drift_percent,
    )


def detect_timestamp_drift(
    list_fetched_at: int,
    chart_last_timestamp: int,
    max_drift_ms: int = MAX_TIMESTAMP_DRIFT_MS,
) -> TimestampDrift:
    drift_ms = abs(list_fetched_at - chart_last_timestamp)
    return TimestampDrift(drift_ms=drift_ms, acceptable=drift_ms <= max_drift_ms)


def summarize_freshness(
    list_fetched_at: int | None,
    chart_fetched_at: int | None = None,
    list_price: float | None = None,
    chart_latest_price: float | None = None,
    *,
    now: int | None = None,
    list_threshold_ms: int = COINS_LIST_THRESHOLD_MS,
    chart_threshold_ms: int = CHART_DATA_THRESHOLD_MS,
    max_drift_percent: float = MAX_PRICE_DRIFT_PERCENT,
) -> FreshnessSummary:
    """Combine list age, chart age and price drift into one verdict.

    Any failing check makes the status STALE; the message lists every
    failing check joined by " | ", or reports the list age when all pass.
    Without a list timestamp the status is UNKNOWN.
    """
    if not list_fetched_at:
        return FreshnessSummary(FreshnessStatus.UNKNOWN, "Waiting for data...")

    current = now if now is not None else now_ms()
    list_info = evaluate_freshness(list_fetched_at, list_threshold_ms, now=current)
    messages: list[str] = []

    if not list_info.is_fresh:
        messages.append(f"List: {list_info.stale_reason}")

    if chart_fetched_at:
        chart_info = evaluate_freshness(
            chart_fetched_at, chart_threshold_ms, now=current
        )
        if not chart_info.is_fresh:
            messages.append(f"Chart: {chart_info.stale_reason}")

    if list_price is not None and chart_latest_price is not None:
        drift = detect_price_drift(list_price, chart_latest_price, max_drift_percent)
        if not drift.acceptable:
            messages.append(f"Price drift {drift.drift_percent:.2f}%")

    if messages:
        return FreshnessSummary(FreshnessStatus.STALE, " | ".join(messages))
    return FreshnessSummary(
        FreshnessStatus.FRESH, f"Data is fresh (age {list_info.age_formatted})"
    )
