"""MarketDataService: the dashboard core's public operations.

Each operation validates its arguments, builds a cache key from the resource
id and query parameters, and goes through that resource's CachedResource.
Results carry cache metadata (cached, stale, fetched_at) and a freshness
verdict.

OHLC provider selection:
- Coinbase when the coin maps to a Coinbase product, the currency is USD and
  the preference is AUTO or COINBASE.
- Any Coinbase failure, or an empty candle list, falls back to CoinGecko
  before an error surfaces.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Self

import httpx
import structlog

from cryptodash.config import AppConfig
from cryptodash.data.cache import CachedResource, CachedResult, TTLCache
from cryptodash.data.freshness import (
    FreshnessSummary,
    TimestampDrift,
    detect_timestamp_drift,
    summarize_freshness,
)
from cryptodash.engine.calculator import ALL_STUDIES, IndicatorSet, Study, compute_indicators
from cryptodash.engine.timeframes import Timeframe
from cryptodash.errors import InvalidRequestError, UpstreamError
from cryptodash.upstream.coinbase.source import CoinbaseSource
from cryptodash.upstream.coingecko.source import CoinGeckoSource, coingecko_headers
from cryptodash.upstream.http import RetryPolicy, UpstreamHttpClient
from cryptodash.upstream.source import CandleSource, MarketDataSource
from cryptodash.upstream.types import (
    ChartData,
    Coin,
    CoinSearchResult,
    OHLCData,
    ProviderPreference,
)
from cryptodash.utils.time import now_ms

log = structlog.get_logger()

MAX_PER_PAGE = 250
SEARCH_INDEX_KEY = "coins_list"


def _require_coin_id(coin_id: str | None) -> str:
    coin_id = (coin_id or "").strip()
    if not coin_id:
        raise InvalidRequestError("Coin ID is required")
    return coin_id


def _parse_days(days: str | int) -> int:
    try:
        value = int(str(days).strip())
    except ValueError as e:
        raise InvalidRequestError(f"days must be an integer, got {days!r}") from e
    if value < 1:
        raise InvalidRequestError(f"days must be >= 1, got {value}")
    return value


def _parse_preference(preference: ProviderPreference | str) -> ProviderPreference:
    try:
        return ProviderPreference(preference)
    except ValueError as e:
        valid = [p.value for p in ProviderPreference]
        raise InvalidRequestError(
            f"provider must be one of {valid}, got {preference!r}"
        ) from e


class MarketDataService:
    """Cached market data operations over a CoinGecko-like source.

    Args:
        markets: Source for market lists, chart history, the coin index and
            fallback OHLC.
        candles: Optional preferred OHLC source (Coinbase).
        config: TTLs, thresholds and display defaults.
        clock: Returns epoch milliseconds; shared by every cache.
        owned_clients: HTTP clients closed by aclose().
    """

    def __init__(
        self,
        markets: MarketDataSource,
        candles: CandleSource | None = None,
        config: AppConfig | None = None,
        clock: Callable[[], int] = now_ms,
        owned_clients: Sequence[UpstreamHttpClient] = (),
    ) -> None:
        self._config = config if config is not None else AppConfig()
        self._markets_source = markets
        self._candle_source = candles
        self._owned_clients = list(owned_clients)

        cache_conf = self._config.cache
        fresh_conf = self._config.freshness
        cap = cache_conf.max_entries

        self._markets: CachedResource[list[Coin]] = CachedResource(
            TTLCache("markets", cache_conf.markets_ttl_ms, cap, clock),
            fresh_conf.coins_list_threshold_ms,
        )
        self._history: CachedResource[ChartData] = CachedResource(
            TTLCache("history", cache_conf.history_ttl_ms, cap, clock),
            fresh_conf.chart_data_threshold_ms,
        )
        self._ohlc: CachedResource[OHLCData] = CachedResource(
            TTLCache("ohlc", cache_conf.ohlc_ttl_ms, cap, clock),
            fresh_conf.chart_data_threshold_ms,
        )
        self._index: CachedResource[list[CoinSearchResult]] = CachedResource(
            TTLCache("search", cache_conf.search_ttl_ms, cap, clock),
            fresh_conf.coins_list_threshold_ms,
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Self:
        """Wire CoinGecko and Coinbase sources from configuration."""
        up = config.upstream
        retry = RetryPolicy(
            max_attempts=up.max_attempts,
            initial_backoff_ms=up.initial_backoff_ms,
        )
        gecko_http = UpstreamHttpClient(
            "coingecko",
            up.coingecko_base_url,
            timeout=up.timeout_seconds,
            retry=retry,
            headers=coingecko_headers(up.coingecko_api_key),
            transport=transport,
        )
        coinbase_http = UpstreamHttpClient(
            "coinbase",
            up.coinbase_base_url,
            timeout=up.timeout_seconds,
            retry=retry,
            transport=transport,
        )
        return cls(
            markets=CoinGeckoSource(gecko_http),
            candles=CoinbaseSource(coinbase_http),
            config=config,
            owned_clients=(gecko_http, coinbase_http),
        )

    @property
    def config(self) -> AppConfig:
        return self._config

    # --- Operations ---

    async def get_market_list(
        self,
        vs_currency: str | None = None,
        per_page: int | None = None,
        page: int = 1,
        ids: Iterable[str] | None = None,
    ) -> CachedResult[list[Coin]]:
        """One page of coins ranked by market cap."""
        vs = (vs_currency or self._config.display.default_currency).lower()
        per_page = per_page if per_page is not None else self._config.display.default_per_page
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise InvalidRequestError(
                f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}"
            )
        if page < 1:
            raise InvalidRequestError(f"page must be >= 1, got {page}")
        id_list = [i.strip() for i in ids or [] if i.strip()] or None

        key = f"{','.join(id_list) if id_list else 'all'}_{vs}_{per_page}_{page}"
        return await self._markets.get(
            key,
            lambda: self._markets_source.get_markets(vs, per_page, page, id_list),
        )

    async def get_history(
        self,
        coin_id: str,
        days: str | int | None = None,
        vs_currency: str | None = None,
    ) -> CachedResult[ChartData]:
        """Price, market-cap and volume series for the last `days` days."""
        coin_id = _require_coin_id(coin_id)
        n_days = _parse_days(days if days is not None else self._config.display.default_timeframe)
        vs = (vs_currency or self._config.display.default_currency).lower()

        key = f"{coin_id}_{n_days}_{vs}"
        return await self._history.get(
            key,
            lambda: self._markets_source.get_market_chart(coin_id, n_days, vs),
        )

    async def get_ohlc(
        self,
        coin_id: str,
        days: str | int | None = None,
        vs_currency: str | None = None,
        provider_preference: ProviderPreference | str = ProviderPreference.AUTO,
    ) -> CachedResult[OHLCData]:
        """Candles for the last `days` days from the preferred provider."""
        coin_id = _require_coin_id(coin_id)
        n_days = _parse_days(days if days is not None else self._config.display.default_timeframe)
        vs = (vs_currency or self._config.display.default_currency).lower()
        preference = _parse_preference(provider_preference)

        key = f"{coin_id}_{n_days}_{vs}_{preference.value}"
        return await self._ohlc.get(
            key,
            lambda: self._fetch_ohlc(coin_id, n_days, vs, preference),
        )

    async def _fetch_ohlc(
        self,
        coin_id: str,
        days: int,
        vs_currency: str,
        preference: ProviderPreference,
    ) -> OHLCData:
        source = self._candle_source
        use_preferred = (
            source is not None
            and preference in (ProviderPreference.AUTO, ProviderPreference.COINBASE)
            and source.supports(coin_id, vs_currency)
        )
        if source is not None and use_preferred:
            try:
                data = await source.get_ohlc(coin_id, days, vs_currency)
            except UpstreamError as e:
                log.warning(
                    "ohlc_provider_fallback",
                    coin_id=coin_id,
                    provider=source.provider.value,
                    error=str(e),
                )
            else:
                if data.candles:
                    return data
                log.info(
                    "ohlc_provider_empty",
                    coin_id=coin_id,
                    provider=source.provider.value,
                )
        return await self._markets_source.get_ohlc(coin_id, days, vs_currency)

    async def search(self, query: str | None = "") -> CachedResult[list[CoinSearchResult]]:
        """Filter the cached coin index by name, symbol or id.

        An empty query returns the head of the index.
        """
        index = await self._index.get(SEARCH_INDEX_KEY, self._markets_source.list_coins)
        display = self._config.display
        needle = (query or "").strip().lower()
        if not needle:
            matches = index.data[: display.search_default_limit]
        else:
            matches = [c for c in index.data if c.matches(needle)][
                : display.search_result_limit
            ]
        return CachedResult(
            data=matches,
            cached=index.cached,
            stale=index.stale,
            fetched_at=index.fetched_at,
            freshness=index.freshness,
        )

    def compute_indicators(
        self,
        prices: Sequence[float],
        timeframe: Timeframe | str,
        enabled: Iterable[str | Study] = ALL_STUDIES,
    ) -> IndicatorSet:
        """Run the indicator engine; unknown study names are rejected."""
        try:
            return compute_indicators(prices, timeframe, enabled)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

    async def get_indicators(
        self,
        coin_id: str,
        days: str | int | None = None,
        vs_currency: str | None = None,
        enabled: Iterable[str | Study] = ALL_STUDIES,
    ) -> tuple[CachedResult[ChartData], IndicatorSet]:
        """Fetch history and compute indicators with the matching timeframe."""
        history = await self.get_history(coin_id, days, vs_currency)
        days_key = days if days is not None else self._config.display.default_timeframe
        indicators = self.compute_indicators(
            history.data.price_values(),
            Timeframe.from_key(days_key),
            enabled,
        )
        return history, indicators

    def check_consistency(
        self,
        list_fetched_at: int | None,
        chart_fetched_at: int | None = None,
        list_price: float | None = None,
        chart_latest_price: float | None = None,
    ) -> FreshnessSummary:
        """Combined list/chart freshness and price drift verdict."""
        conf = self._config.freshness
        return summarize_freshness(
            list_fetched_at,
            chart_fetched_at,
            list_price,
            chart_latest_price,
            now=self._markets.cache.now(),
            list_threshold_ms=conf.coins_list_threshold_ms,
            chart_threshold_ms=conf.chart_data_threshold_ms,
            max_drift_percent=conf.max_price_drift_pct,
        )

    def check_timestamp_drift(
        self,
        list_fetched_at: int,
        chart_last_timestamp: int,
    ) -> TimestampDrift:
        """Gap between the list fetch and the chart's last point, against config."""
        return detect_timestamp_drift(
            list_fetched_at,
            chart_last_timestamp,
            max_drift_ms=self._config.freshness.max_timestamp_drift_ms,
        )

    # --- Lifecycle ---

    def clear_caches(self) -> None:
        for resource in (self._markets, self._history, self._ohlc, self._index):
            resource.cache.clear()

    async def aclose(self) -> None:
        for client in self._owned_clients:
            await client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
