"""UpstreamHttpClient: JSON GETs over httpx with exponential backoff.

Retry policy:
- 429, 5xx, timeouts and any other httpx request failure (connection,
  decoding, redirect loops) are retried, up to
  RetryPolicy.max_attempts attempts in total.
- The delay after failed attempt n (0-based) is initial_backoff * 2**n, so the
  default policy sleeps 1s then 2s between three attempts.
- Any other 4xx is raised immediately as UpstreamAPIError.

Sleeps go through asyncio.sleep, so cancelling the calling task cancels a
pending backoff as well as an in-flight request.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Self

import httpx
import structlog

from cryptodash.errors import (
    UpstreamAPIError,
    UpstreamError,
    UpstreamPayloadError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)

log = structlog.get_logger()

HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them."""

    max_attempts: int = 3
    initial_backoff_ms: int = 1000

    def backoff_seconds(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (0-based)."""
        return self.initial_backoff_ms * (2**attempt) / 1000


def is_retryable_status(status_code: int) -> bool:
    return status_code == HTTP_TOO_MANY_REQUESTS or status_code >= 500


class UpstreamHttpClient:
    """Thin async JSON client for one upstream API.

    Args:
        name: Provider name used in logs and error messages.
        base_url: Prefix for every request path.
        timeout: Default per-request timeout in seconds; get_json() can
            override it per call.
        retry: Attempt count and backoff schedule.
        headers: Extra headers sent with every request (API keys).
        transport: Custom httpx transport (tests pass httpx.MockTransport).
        sleep: Awaitable sleep used between attempts.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float = 10.0,
        retry: RetryPolicy | None = None,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._name = name
        self._retry = retry if retry is not None else RetryPolicy()
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
            transport=transport,
            follow_redirects=True,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    async def get_json(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """GET `path` and decode the JSON body, retrying transient failures.

        Raises:
            UpstreamRateLimitedError: Still 429 after the last attempt.
            UpstreamUnavailableError: Still failing (5xx/network/timeout)
                after the last attempt.
            UpstreamAPIError: Non-retryable 4xx.
            UpstreamPayloadError: 2xx with a body that is not JSON.
        """
        request_timeout: Any = (
            timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        )
        attempts = self._retry.max_attempts
        last_error: UpstreamError | None = None
        last_cause: BaseException | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.get(
                    path,
                    params=params,
                    timeout=request_timeout,
                )
            except httpx.TimeoutException as e:
                last_error = UpstreamUnavailableError(
                    f"{self._name} request to {path} timed out"
                )
                last_cause = e
            except httpx.RequestError as e:
                last_error = UpstreamUnavailableError(
                    f"{self._name} request to {path} failed: {e}"
                )
                last_cause = e
            else:
                status = response.status_code
                if status == HTTP_TOO_MANY_REQUESTS:
                    last_error = UpstreamRateLimitedError(
                        f"{self._name} rate limited request to {path}"
                    )
                    last_cause = None
                elif is_retryable_status(status):
                    last_error = UpstreamUnavailableError(
                        f"{self._name} returned {status} for {path}"
                    )
                    last_cause = None
                elif response.is_error:
                    log.warning(
                        "upstream_request_rejected",
                        provider=self._name,
                        path=path,
                        status_code=status,
                    )
                    raise UpstreamAPIError(status, response.text[:200])
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise UpstreamPayloadError(
                            f"{self._name} returned non-JSON body for {path}"
                        ) from e

            if attempt < attempts - 1:
                delay = self._retry.backoff_seconds(attempt)
                log.info(
                    "upstream_retry",
                    provider=self._name,
                    path=path,
                    attempt=attempt + 1,
                    backoff_s=delay,
                    error=str(last_error),
                )
                await self._sleep(delay)

        assert last_error is not None
        log.warning(
            "upstream_retries_exhausted",
            provider=self._name,
            path=path,
            attempts=attempts,
            error=str(last_error),
        )
        raise last_error from last_cause

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
