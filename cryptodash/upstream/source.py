"""Source protocols: abstract interfaces for upstream market data.

CandleSource is the narrow OHLC-only interface (Coinbase Exchange);
MarketDataSource is the full interface (CoinGecko, fakes). Implementations
raise UpstreamError subclasses and never retry on their own: retries happen
in UpstreamHttpClient, stale fallback in the cache layer.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptodash.upstream.types import (
    ChartData,
    Coin,
    CoinSearchResult,
    OHLCData,
    Provider,
)


@runtime_checkable
class CandleSource(Protocol):
    """Async interface for OHLC candles."""

    @property
    def provider(self) -> Provider:
        """Provider tag stamped on OHLCData produced by this source."""
        ...

    def supports(self, coin_id: str, vs_currency: str) -> bool:
        """True if this source can serve candles for the coin/currency pair."""
        ...

    async def get_ohlc(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> OHLCData:
        """Fetch candles covering the last `days` days.

        Returns:
            OHLCData with candles ordered by timestamp ascending.
        """
        ...


@runtime_checkable
class MarketDataSource(CandleSource, Protocol):
    """Async interface for market lists, chart history and the coin index."""

    async def get_markets(
        self,
        vs_currency: str = "usd",
        per_page: int = 100,
        page: int = 1,
        ids: list[str] | None = None,
    ) -> list[Coin]:
        """Fetch one page of coins ranked by market cap."""
        ...

    async def get_market_chart(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> ChartData:
        """Fetch price/market-cap/volume history for the last `days` days."""
        ...

    async def list_coins(self) -> list[CoinSearchResult]:
        """Fetch the full coin index (id, name, symbol)."""
        ...
