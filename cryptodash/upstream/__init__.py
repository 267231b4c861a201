"""Upstream market data layer.

Re-exports the public types, protocols and sources for convenient imports:
    from cryptodash.upstream import Candle, CoinGeckoSource, MarketDataSource
"""

from cryptodash.upstream.coinbase.source import CoinbaseSource
from cryptodash.upstream.coingecko.source import CoinGeckoSource
from cryptodash.upstream.http import RetryPolicy, UpstreamHttpClient
from cryptodash.upstream.source import CandleSource, MarketDataSource
from cryptodash.upstream.types import (
    Candle,
    ChartData,
    Coin,
    CoinSearchResult,
    OHLCData,
    PriceSample,
    Provider,
    ProviderPreference,
)

__all__ = [
    "Candle",
    "CandleSource",
    "ChartData",
    "Coin",
    "CoinGeckoSource",
    "CoinSearchResult",
    "CoinbaseSource",
    "MarketDataSource",
    "OHLCData",
    "PriceSample",
    "Provider",
    "ProviderPreference",
    "RetryPolicy",
    "UpstreamHttpClient",
]
