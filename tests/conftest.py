"""Shared test fixtures for cryptodash."""

from __future__ import annotations

import os

import pytest

from cryptodash.config import AppConfig
from cryptodash.data.service import MarketDataService
from cryptodash.upstream.fake.source import FakeMarketSource
from cryptodash.upstream.types import Provider
from tests.factories import (
    FakeClock,
    make_chart,
    make_coin,
    make_index,
    make_ohlc,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app_config(monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    """Default config, isolated from CRYPTODASH_* variables and .env files."""
    for name in list(os.environ):
        if name.startswith("CRYPTODASH_"):
            monkeypatch.delenv(name)
    return AppConfig(_env_file=None)


@pytest.fixture
def gecko() -> FakeMarketSource:
    """CoinGecko stand-in with a small market, charts and an index."""
    return FakeMarketSource(
        coins=[
            make_coin(),
            make_coin(
                id="ethereum",
                symbol="eth",
                name="Ethereum",
                current_price=3_000.0,
                market_cap_rank=2,
            ),
        ],
        charts={"bitcoin": make_chart([float(100 + i) for i in range(60)])},
        ohlc={
            "bitcoin": make_ohlc(provider=Provider.COINGECKO),
            "monero": make_ohlc(provider=Provider.COINGECKO),
        },
        index=make_index(),
    )


@pytest.fixture
def coinbase() -> FakeMarketSource:
    """Coinbase stand-in that only supports bitcoin."""
    return FakeMarketSource(
        ohlc={"bitcoin": make_ohlc(provider=Provider.COINBASE, granularity="1h")},
        provider=Provider.COINBASE,
        supported={"bitcoin"},
    )


@pytest.fixture
def service(
    gecko: FakeMarketSource,
    coinbase: FakeMarketSource,
    app_config: AppConfig,
    clock: FakeClock,
) -> MarketDataService:
    return MarketDataService(
        markets=gecko,
        candles=coinbase,
        config=app_config,
        clock=clock,
    )
