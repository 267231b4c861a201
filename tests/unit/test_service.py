"""Tests for MarketDataService operations over fake sources."""

from __future__ import annotations

import httpx
import pytest

from cryptodash.config import AppConfig
from cryptodash.data.freshness import FreshnessStatus
from cryptodash.data.service import MarketDataService
from cryptodash.engine.timeframes import Timeframe
from cryptodash.errors import (
    InvalidRequestError,
    UpstreamAPIError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)
from cryptodash.upstream.coinbase.source import CoinbaseSource
from cryptodash.upstream.coingecko.source import CoinGeckoSource
from cryptodash.upstream.fake.source import FakeMarketSource
from cryptodash.upstream.types import OHLCData, Provider, ProviderPreference
from tests.factories import FakeClock, make_coin, make_ohlc


class TestGetMarketList:
    async def test_fetch_then_cached(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        first = await service.get_market_list()
        assert [c.id for c in first.data] == ["bitcoin", "ethereum"]
        assert first.cached is False
        assert first.fetched_at == clock.now

        clock.advance(29_999)
        second = await service.get_market_list()
        assert second.cached is True
        assert gecko.calls["get_markets"] == 1

    async def test_ttl_is_thirty_seconds(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        await service.get_market_list()
        clock.advance(30_000)
        assert (await service.get_market_list()).cached is False
        assert gecko.calls["get_markets"] == 2

    async def test_query_params_are_part_of_key(
        self, service: MarketDataService, gecko: FakeMarketSource
    ) -> None:
        await service.get_market_list("usd", 100, 1)
        await service.get_market_list("eur", 100, 1)
        await service.get_market_list("usd", 50, 1)
        await service.get_market_list("usd", 100, 1, ids=["bitcoin"])
        assert gecko.calls["get_markets"] == 4

    async def test_ids_filter(self, service: MarketDataService) -> None:
        result = await service.get_market_list(ids=["ethereum"])
        assert [c.id for c in result.data] == ["ethereum"]

    async def test_stale_on_upstream_failure(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        fresh = await service.get_market_list()
        clock.advance(120_000)
        gecko.fail_with(UpstreamRateLimitedError("429"))

        result = await service.get_market_list()
        assert result.stale is True
        assert result.cached is True
        assert result.data == fresh.data
        assert result.fetched_at == fresh.fetched_at
        assert result.freshness is not None
        assert result.freshness.is_fresh is False

    async def test_error_without_cache(
        self, service: MarketDataService, gecko: FakeMarketSource
    ) -> None:
        gecko.fail_with(UpstreamUnavailableError("down"))
        with pytest.raises(UpstreamUnavailableError):
            await service.get_market_list()

    @pytest.mark.parametrize(("per_page", "page"), [(0, 1), (251, 1), (100, 0)])
    async def test_invalid_paging(
        self,
        service: MarketDataService,
        gecko: FakeMarketSource,
        per_page: int,
        page: int,
    ) -> None:
        with pytest.raises(InvalidRequestError):
            await service.get_market_list(per_page=per_page, page=page)
        assert gecko.calls["get_markets"] == 0


class TestGetHistory:
    async def test_history(self, service: MarketDataService) -> None:
        result = await service.get_history("bitcoin", "30")
        assert len(result.data.prices) == 60
        assert result.cached is False

    async def test_default_days(
        self, service: MarketDataService, gecko: FakeMarketSource
    ) -> None:
        await service.get_history("bitcoin")
        await service.get_history("bitcoin", "7")
        assert gecko.calls["get_market_chart"] == 1

    async def test_ttl_is_five_minutes(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        await service.get_history("bitcoin", 7)
        clock.advance(299_999)
        assert (await service.get_history("bitcoin", 7)).cached is True
        clock.advance(1)
        assert (await service.get_history("bitcoin", 7)).cached is False

    @pytest.mark.parametrize("coin_id", ["", "   "])
    async def test_missing_coin_id(self, service: MarketDataService, coin_id: str) -> None:
        with pytest.raises(InvalidRequestError, match="Coin ID is required"):
            await service.get_history(coin_id)

    @pytest.mark.parametrize("days", ["seven", "1.5", "0", "-7"])
    async def test_invalid_days(
        self, service: MarketDataService, gecko: FakeMarketSource, days: str
    ) -> None:
        with pytest.raises(InvalidRequestError, match="days"):
            await service.get_history("bitcoin", days)
        assert gecko.calls["get_market_chart"] == 0

    async def test_unknown_coin_surfaces_api_error(self, service: MarketDataService) -> None:
        with pytest.raises(UpstreamAPIError):
            await service.get_history("not-a-coin")


class TestGetOHLC:
    async def test_auto_prefers_coinbase(
        self,
        service: MarketDataService,
        coinbase: FakeMarketSource,
        gecko: FakeMarketSource,
    ) -> None:
        result = await service.get_ohlc("bitcoin", "7")
        assert result.data.provider is Provider.COINBASE
        assert result.data.granularity == "1h"
        assert coinbase.calls["get_ohlc"] == 1
        assert gecko.calls["get_ohlc"] == 0

    async def test_coingecko_preference_skips_coinbase(
        self, service: MarketDataService, coinbase: FakeMarketSource
    ) -> None:
        result = await service.get_ohlc("bitcoin", "7", provider_preference="coingecko")
        assert result.data.provider is Provider.COINGECKO
        assert coinbase.calls["get_ohlc"] == 0

    async def test_unsupported_coin_uses_coingecko(
        self, service: MarketDataService, coinbase: FakeMarketSource
    ) -> None:
        result = await service.get_ohlc("monero", "7", provider_preference=ProviderPreference.COINBASE)
        assert result.data.provider is Provider.COINGECKO
        assert coinbase.calls["get_ohlc"] == 0

    async def test_coinbase_failure_falls_back(
        self,
        service: MarketDataService,
        coinbase: FakeMarketSource,
        gecko: FakeMarketSource,
    ) -> None:
        coinbase.fail_with(UpstreamUnavailableError("coinbase down"))
        result = await service.get_ohlc("bitcoin", "7")
        assert result.data.provider is Provider.COINGECKO
        assert result.stale is False
        assert coinbase.calls["get_ohlc"] == 1
        assert gecko.calls["get_ohlc"] == 1

    async def test_empty_coinbase_result_falls_back(
        self, gecko: FakeMarketSource, app_config: AppConfig, clock: FakeClock
    ) -> None:
        empty = FakeMarketSource(
            ohlc={"bitcoin": OHLCData(candles=(), provider=Provider.COINBASE, granularity="1h")},
            provider=Provider.COINBASE,
        )
        service = MarketDataService(gecko, empty, app_config, clock)
        result = await service.get_ohlc("bitcoin", "7")
        assert result.data.provider is Provider.COINGECKO
        assert len(result.data.candles) == 3

    async def test_both_fail_serves_stale(
        self,
        service: MarketDataService,
        coinbase: FakeMarketSource,
        gecko: FakeMarketSource,
        clock: FakeClock,
    ) -> None:
        first = await service.get_ohlc("bitcoin", "7")
        clock.advance(60_000)
        coinbase.fail_with(UpstreamUnavailableError("down"))
        gecko.fail_with(UpstreamRateLimitedError("429"))

        result = await service.get_ohlc("bitcoin", "7")
        assert result.stale is True
        assert result.data == first.data

    async def test_preference_is_part_of_key(
        self, service: MarketDataService, coinbase: FakeMarketSource, gecko: FakeMarketSource
    ) -> None:
        auto = await service.get_ohlc("bitcoin", "7", provider_preference="auto")
        gecko_pref = await service.get_ohlc("bitcoin", "7", provider_preference="coingecko")
        assert auto.data.provider is Provider.COINBASE
        assert gecko_pref.data.provider is Provider.COINGECKO

    async def test_invalid_preference(self, service: MarketDataService) -> None:
        with pytest.raises(InvalidRequestError, match="provider"):
            await service.get_ohlc("bitcoin", "7", provider_preference="kraken")

    async def test_without_candle_source(
        self, gecko: FakeMarketSource, app_config: AppConfig, clock: FakeClock
    ) -> None:
        service = MarketDataService(gecko, None, app_config, clock)
        result = await service.get_ohlc("bitcoin", "1")
        assert result.data.provider is Provider.COINGECKO


class TestSearch:
    async def test_empty_query_returns_first_fifty(self, service: MarketDataService) -> None:
        result = await service.search("")
        assert len(result.data) == 50
        assert result.data[0].id == "bitcoin"

    async def test_none_query_treated_as_empty(self, service: MarketDataService) -> None:
        assert len((await service.search(None)).data) == 50

    async def test_case_insensitive_filter(self, service: MarketDataService) -> None:
        result = await service.search("BiTcOiN")
        assert [c.id for c in result.data] == ["bitcoin", "bitcoin-cash"]

    async def test_matches_symbol(self, service: MarketDataService) -> None:
        result = await service.search("eth")
        assert [c.id for c in result.data] == ["ethereum"]

    async def test_results_capped_at_twenty(self, service: MarketDataService) -> None:
        result = await service.search("token")
        assert len(result.data) == 20

    async def test_no_match(self, service: MarketDataService) -> None:
        assert (await service.search("zzzz")).data == []

    async def test_index_fetched_once(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        await service.search("bit")
        await service.search("eth")
        clock.advance(3_599_999)
        await service.search("sol")
        assert gecko.calls["list_coins"] == 1

    async def test_stale_index_after_failure(
        self, service: MarketDataService, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        await service.search("")
        clock.advance(3_600_000)
        gecko.fail_with(UpstreamUnavailableError("down"))
        result = await service.search("sol")
        assert result.stale is True
        assert [c.id for c in result.data] == ["solana"]


class TestIndicators:
    def test_compute_indicators(self, service: MarketDataService) -> None:
        result = service.compute_indicators([float(i) for i in range(1, 21)], "7", ["rsi"])
        assert result.timeframe is Timeframe.ONE_WEEK
        assert result.rsi is not None
        assert result.rsi[14] == 100.0

    def test_unknown_study_is_invalid_request(self, service: MarketDataService) -> None:
        with pytest.raises(InvalidRequestError):
            service.compute_indicators([1.0, 2.0], "7", ["ichimoku"])

    async def test_get_indicators_uses_history(self, service: MarketDataService) -> None:
        history, ind = await service.get_indicators("bitcoin", "30")
        assert ind.timeframe is Timeframe.ONE_MONTH
        assert ind.sample_count == len(history.data.prices) == 60


class TestCheckConsistency:
    def test_fresh(self, service: MarketDataService, clock: FakeClock) -> None:
        summary = service.check_consistency(clock.now - 5_000, clock.now - 5_000, 100.0, 100.2)
        assert summary.status is FreshnessStatus.FRESH

    def test_uses_configured_thresholds(
        self, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        config = AppConfig(_env_file=None, freshness={"coins_list_threshold_ms": 1_000})
        service = MarketDataService(gecko, config=config, clock=clock)
        summary = service.check_consistency(clock.now - 5_000)
        assert summary.status is FreshnessStatus.STALE

    def test_unknown(self, service: MarketDataService) -> None:
        assert service.check_consistency(None).status is FreshnessStatus.UNKNOWN

    def test_timestamp_drift_default_limit(
        self, service: MarketDataService, clock: FakeClock
    ) -> None:
        drift = service.check_timestamp_drift(clock.now, clock.now - 120_000)
        assert drift.drift_ms == 120_000
        assert drift.acceptable is True

    def test_timestamp_drift_uses_configured_limit(
        self, gecko: FakeMarketSource, clock: FakeClock
    ) -> None:
        config = AppConfig(_env_file=None, freshness={"max_timestamp_drift_ms": 1_000})
        service = MarketDataService(gecko, config=config, clock=clock)
        assert service.check_timestamp_drift(clock.now, clock.now - 1_000).acceptable is True
        assert service.check_timestamp_drift(clock.now, clock.now - 1_001).acceptable is False


class TestFromConfig:
    async def test_wires_real_sources(self, app_config: AppConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        service = MarketDataService.from_config(
            app_config, transport=httpx.MockTransport(handler)
        )
        async with service:
            assert isinstance(service._markets_source, CoinGeckoSource)
            assert isinstance(service._candle_source, CoinbaseSource)
            result = await service.get_market_list()
            assert result.data == []

    async def test_clear_caches(
        self, service: MarketDataService, gecko: FakeMarketSource
    ) -> None:
        await service.get_market_list()
        service.clear_caches()
        assert (await service.get_market_list()).cached is False
        assert gecko.calls["get_markets"] == 2


class TestFakeSource:
    async def test_failure_queue_then_recovers(self) -> None:
        source = FakeMarketSource(ohlc={"bitcoin": make_ohlc()})
        source.fail_with(UpstreamUnavailableError("a"), UpstreamRateLimitedError("b"))
        with pytest.raises(UpstreamUnavailableError):
            await source.get_ohlc("bitcoin", 7)
        with pytest.raises(UpstreamRateLimitedError):
            await source.get_ohlc("bitcoin", 7)
        assert len((await source.get_ohlc("bitcoin", 7)).candles) == 3
        assert source.calls["get_ohlc"] == 3

    async def test_pagination(self) -> None:
        source = FakeMarketSource(coins=[make_coin(id=f"c{i}") for i in range(5)])
        page = await source.get_markets(per_page=2, page=2)
        assert [c.id for c in page] == ["c2", "c3"]
