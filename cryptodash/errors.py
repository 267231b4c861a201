"""Error hierarchy for the dashboard core.

Everything raised on purpose inherits from DashboardError. Upstream failures
share UpstreamError so the cache layer can degrade to stale data with a
single except clause.
"""

from __future__ import annotations


class DashboardError(Exception):
    """Base exception for all dashboard-core errors."""


class InvalidRequestError(DashboardError):
    """Caller supplied a missing or malformed identifier. Never retried."""


class InvalidParameterError(DashboardError, ValueError):
    """Indicator parameter out of range (period < 1, fast >= slow, ...)."""


class InvalidCandleError(DashboardError, ValueError):
    """OHLC values violate low <= open/close <= high or are not finite."""


class UpstreamError(DashboardError):
    """Base for failures talking to a third-party market data API."""


class UpstreamRateLimitedError(UpstreamError):
    """HTTP 429 persisted through every retry attempt."""


class UpstreamUnavailableError(UpstreamError):
    """Network failure, timeout or 5xx persisted through every retry attempt."""


class UpstreamAPIError(UpstreamError):
    """Non-retryable HTTP error (4xx other than 429).

    Stores the HTTP status code and the response text.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Upstream API error {status_code}: {message}")


class UpstreamPayloadError(UpstreamError):
    """Response body was not the JSON shape the mapper expects."""
