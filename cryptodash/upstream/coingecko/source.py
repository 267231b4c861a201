"""CoinGeckoSource: market list, chart history, OHLC and coin index.

Free public API (an optional demo key raises the rate limit). Requests go
through UpstreamHttpClient, so this class only builds queries and maps
payloads.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

import structlog

from cryptodash.engine.timeframes import Timeframe
from cryptodash.errors import UpstreamPayloadError
from cryptodash.upstream.coingecko.mappers import (
    coin_list_entry_to_result,
    market_chart_to_chart_data,
    market_row_to_coin,
    ohlc_rows_to_candles,
)
from cryptodash.upstream.http import UpstreamHttpClient
from cryptodash.upstream.types import (
    ChartData,
    Coin,
    CoinSearchResult,
    OHLCData,
    Provider,
)

log = structlog.get_logger()

API_KEY_HEADER = "x-cg-demo-api-key"

# CoinGecko picks OHLC candle size from the requested range.
OHLC_GRANULARITY: Mapping[Timeframe, str] = {
    Timeframe.ONE_DAY: "30m",
    Timeframe.ONE_WEEK: "4h",
    Timeframe.ONE_MONTH: "4h",
    Timeframe.ONE_YEAR: "4d",
}

_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, IndexError)


def coingecko_headers(api_key: str) -> dict[str, str]:
    return {API_KEY_HEADER: api_key} if api_key else {}


class CoinGeckoSource:
    """MarketDataSource implementation backed by the CoinGecko v3 REST API."""

    def __init__(self, http: UpstreamHttpClient) -> None:
        self._http = http

    @property
    def provider(self) -> Provider:
        return Provider.COINGECKO

    def supports(self, coin_id: str, vs_currency: str) -> bool:
        return bool(coin_id)

    async def get_markets(
        self,
        vs_currency: str = "usd",
        per_page: int = 100,
        page: int = 1,
        ids: list[str] | None = None,
    ) -> list[Coin]:
        params: dict[str, Any] = {
            "vs_currency": vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
            "price_change_percentage": "24h,7d,30d",
        }
        if ids:
            params["ids"] = ",".join(ids)
        rows = await self._http.get_json("/coins/markets", params)
        try:
            return [market_row_to_coin(row) for row in rows]
        except _PAYLOAD_ERRORS as e:
            raise UpstreamPayloadError(f"Unexpected /coins/markets payload: {e}") from e

    async def get_market_chart(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> ChartData:
        payload = await self._http.get_json(
            f"/coins/{coin_id}/market_chart",
            {"vs_currency": vs_currency, "days": days},
        )
        try:
            return market_chart_to_chart_data(payload)
        except _PAYLOAD_ERRORS as e:
            raise UpstreamPayloadError(
                f"Unexpected market_chart payload for {coin_id}: {e}"
            ) from e

    async def get_ohlc(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> OHLCData:
        rows = await self._http.get_json(
            f"/coins/{coin_id}/ohlc",
            {"vs_currency": vs_currency, "days": days},
        )
        try:
            candles = ohlc_rows_to_candles(rows)
        except _PAYLOAD_ERRORS as e:
            raise UpstreamPayloadError(
                f"Unexpected ohlc payload for {coin_id}: {e}"
            ) from e
        return OHLCData(
            candles=candles,
            provider=Provider.COINGECKO,
            granularity=OHLC_GRANULARITY[Timeframe.from_key(days)],
        )

    async def list_coins(self) -> list[CoinSearchResult]:
        entries = await self._http.get_json("/coins/list")
        try:
            results = [coin_list_entry_to_result(e) for e in entries]
        except _PAYLOAD_ERRORS as e:
            raise UpstreamPayloadError(f"Unexpected /coins/list payload: {e}") from e
        log.debug("coin_index_loaded", count=len(results))
        return results

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
