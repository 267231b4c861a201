"""FakeMarketSource: in-memory market data for testing.

Lightweight implementation of MarketDataSource for unit testing the cache
and service layers without HTTP.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Self

from cryptodash.errors import UpstreamAPIError
from cryptodash.upstream.types import (
    ChartData,
    Coin,
    CoinSearchResult,
    OHLCData,
    Provider,
)


class FakeMarketSource:
    """In-memory MarketDataSource for testing.

    Supply canned data at construction. fail_with() queues errors that the
    next calls raise, one per call, before canned data is served again.
    Setting `gate` to an unset asyncio.Event holds every call until the
    test sets it.
    """

    def __init__(
        self,
        coins: list[Coin] | None = None,
        charts: dict[str, ChartData] | None = None,
        ohlc: dict[str, OHLCData] | None = None,
        index: list[CoinSearchResult] | None = None,
        provider: Provider = Provider.COINGECKO,
        supported: set[str] | None = None,
    ) -> None:
        self._coins: list[Coin] = coins if coins is not None else []
        self._charts: dict[str, ChartData] = charts if charts is not None else {}
        self._ohlc: dict[str, OHLCData] = ohlc if ohlc is not None else {}
        self._index: list[CoinSearchResult] = index if index is not None else []
        self._provider = provider
        self._supported = supported
        self._failures: list[BaseException] = []
        self.calls: Counter[str] = Counter()
        self.gate: asyncio.Event | None = None

    def fail_with(self, *errors: BaseException) -> None:
        """Queue errors raised by the next len(errors) calls."""
        self._failures.extend(errors)

    async def _enter(self, method: str) -> None:
        self.calls[method] += 1
        if self.gate is not None:
            await self.gate.wait()
        if self._failures:
            raise self._failures.pop(0)

    @property
    def provider(self) -> Provider:
        return self._provider

    def supports(self, coin_id: str, vs_currency: str) -> bool:
        if self._supported is None:
            return True
        return coin_id in self._supported

    async def get_markets(
        self,
        vs_currency: str = "usd",
        per_page: int = 100,
        page: int = 1,
        ids: list[str] | None = None,
    ) -> list[Coin]:
        await self._enter("get_markets")
        coins = [c for c in self._coins if ids is None or c.id in ids]
        offset = (page - 1) * per_page
        return coins[offset : offset + per_page]

    async def get_market_chart(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> ChartData:
        await self._enter("get_market_chart")
        if coin_id not in self._charts:
            raise UpstreamAPIError(404, f"coin not found: {coin_id}")
        return self._charts[coin_id]

    async def get_ohlc(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> OHLCData:
        await self._enter("get_ohlc")
        if coin_id not in self._ohlc:
            raise UpstreamAPIError(404, f"coin not found: {coin_id}")
        return self._ohlc[coin_id]

    async def list_coins(self) -> list[CoinSearchResult]:
        await self._enter("list_coins")
        return list(self._index)

    async def aclose(self) -> None:
        pass

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
