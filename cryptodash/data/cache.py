"""TTL caches with stale-on-error fallback.

Per cache key:
    EMPTY --fetch ok--> FRESH --ttl elapsed--> STALE --fetch ok--> FRESH
    STALE --fetch failed--> STALE (served with stale=True)
    EMPTY --fetch failed--> error propagates

Each resource type owns a TTLCache; CachedResource wraps it with the fetch
policy. Entries are replaced wholesale, never mutated. An optional
max_entries cap evicts the least recently used key.

Concurrent misses on one key share a single in-flight fetch. The shared
fetch keeps running while any waiter is still awaiting it and is cancelled
when the last waiter is cancelled.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from cryptodash.data.freshness import FreshnessInfo, evaluate_freshness
from cryptodash.errors import UpstreamError
from cryptodash.utils.time import now_ms

log = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    fetched_at: int
    key: str


@dataclass(frozen=True)
class CachedResult(Generic[T]):
    """Payload plus cache metadata returned by every service operation."""

    data: T
    cached: bool
    stale: bool
    fetched_at: int
    freshness: FreshnessInfo | None = None


class TTLCache(Generic[T]):
    """Key -> CacheEntry map with a fixed time-to-live.

    Args:
        name: Resource name used in log events.
        ttl_ms: Entries younger than this are served without a fetch.
        max_entries: LRU cap; None means unbounded.
        clock: Returns epoch milliseconds.
    """

    def __init__(
        self,
        name: str,
        ttl_ms: int,
        max_entries: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if ttl_ms < 0:
            raise ValueError(f"ttl_ms must be >= 0, got {ttl_ms}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._name = name
        self._ttl_ms = ttl_ms
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def now(self) -> int:
        return self._clock()

    def get_fresh(self, key: str) -> CacheEntry[T] | None:
        """Entry for `key` if it is younger than the TTL."""
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.fetched_at >= self._ttl_ms:
            return None
        self._entries.move_to_end(key)
        return entry

    def get_any(self, key: str) -> CacheEntry[T] | None:
        """Entry for `key` regardless of age."""
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: str, data: T, fetched_at: int | None = None) -> CacheEntry[T]:
        entry = CacheEntry(
            data=data,
            fetched_at=fetched_at if fetched_at is not None else self._clock(),
            key=key,
        )
        self._entries[key] = entry
        self._entries.move_to_end(key)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("cache_evicted", cache=self._name, key=evicted)
        return entry

    def evict(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class _Flight(Generic[T]):
    __slots__ = ("task", "waiters")

    def __init__(self, task: asyncio.Task[CacheEntry[T]]) -> None:
        self.task = task
        self.waiters = 0


class CachedResource(Generic[T]):
    """Serve one resource type through a TTLCache.

    Args:
        cache: Backing cache; its clock also drives freshness checks.
        freshness_threshold_ms: Threshold used for the freshness verdict
            attached to every result.
    """

    def __init__(self, cache: TTLCache[T], freshness_threshold_ms: int) -> None:
        self._cache = cache
        self._threshold_ms = freshness_threshold_ms
        self._inflight: dict[str, _Flight[T]] = {}

    @property
    def cache(self) -> TTLCache[T]:
        return self._cache

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def _result(self, entry: CacheEntry[T], *, cached: bool, stale: bool) -> CachedResult[T]:
        return CachedResult(
            data=entry.data,
            cached=cached,
            stale=stale,
            fetched_at=entry.fetched_at,
            freshness=evaluate_freshness(
                entry.fetched_at, self._threshold_ms, now=self._cache.now()
            ),
        )

    async def get(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
    ) -> CachedResult[T]:
        """Return the cached value for `key`, refreshing it when expired.

        Raises:
            UpstreamError: The fetch failed and nothing is cached for `key`.
        """
        entry = self._cache.get_fresh(key)
        if entry is not None:
            log.debug("cache_hit", cache=self._cache.name, key=key)
            return self._result(entry, cached=True, stale=False)

        flight = self._inflight.get(key)
        if flight is None:
            flight = _Flight(asyncio.create_task(self._refresh(key, fetch)))
            self._inflight[key] = flight
            flight.task.add_done_callback(
                lambda _task, k=key, f=flight: self._flight_done(k, f)
            )
        else:
            log.debug("cache_fetch_shared", cache=self._cache.name, key=key)

        flight.waiters += 1
        try:
            entry = await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters == 1 and not flight.task.done():
                flight.task.cancel()
            raise
        except UpstreamError as e:
            stale_entry = self._cache.get_any(key)
            if stale_entry is None:
                raise
            log.warning(
                "served_stale",
                cache=self._cache.name,
                key=key,
                fetched_at=stale_entry.fetched_at,
                error=str(e),
            )
            return self._result(stale_entry, cached=True, stale=True)
        finally:
            flight.waiters -= 1

        return self._result(entry, cached=False, stale=False)

    async def _refresh(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
    ) -> CacheEntry[T]:
        data = await fetch()
        entry = self._cache.put(key, data)
        log.info("cache_refreshed", cache=self._cache.name, key=key)
        return entry

    def _flight_done(self, key: str, flight: _Flight[T]) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]
