"""CoinbaseSource: finer-grained OHLC candles for major USD pairs.

Coinbase serves at most 300 candles per request, so longer ranges are
fetched in chunks walking backwards from now, capped at MAX_CHUNKS requests.
Only coins listed in COINGECKO_TO_COINBASE quoted in USD are supported;
everything else goes to CoinGecko.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Self

import structlog

from cryptodash.errors import InvalidRequestError, UpstreamPayloadError
from cryptodash.upstream.coinbase.mappers import candle_rows_to_candles
from cryptodash.upstream.http import UpstreamHttpClient
from cryptodash.upstream.types import OHLCData, Provider
from cryptodash.utils.time import MS_PER_SECOND, now_ms

log = structlog.get_logger()

MAX_CANDLES_PER_REQUEST = 300
MAX_CHUNKS = 3
SECONDS_PER_DAY = 86_400
DEFAULT_GRANULARITY_S = 3600

COINGECKO_TO_COINBASE: Mapping[str, str] = MappingProxyType(
    {
        "bitcoin": "BTC-USD",
        "ethereum": "ETH-USD",
        "litecoin": "LTC-USD",
        "bitcoin-cash": "BCH-USD",
        "ripple": "XRP-USD",
        "cardano": "ADA-USD",
        "solana": "SOL-USD",
        "polkadot": "DOT-USD",
        "dogecoin": "DOGE-USD",
        "avalanche": "AVAX-USD",
        "chainlink": "LINK-USD",
        "polygon": "MATIC-USD",
        "uniswap": "UNI-USD",
        "stellar": "XLM-USD",
        "cosmos": "ATOM-USD",
        "shiba-inu": "SHIB-USD",
        "tron": "TRX-USD",
        "wrapped-bitcoin": "WBTC-USD",
        "lido-staked-ether": "STETH-USD",
        "usd-coin": "USDC-USD",
        "tether": "USDT-USD",
    }
)

# Candle size in seconds by requested range in days.
GRANULARITY_BY_DAYS: Mapping[int, int] = MappingProxyType(
    {1: 300, 7: 3600, 30: 21600, 365: 86400}
)

GRANULARITY_LABELS: Mapping[int, str] = MappingProxyType(
    {60: "1m", 300: "5m", 900: "15m", 3600: "1h", 21600: "6h", 86400: "1d"}
)

_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, IndexError)


def granularity_for_days(days: int) -> int:
    return GRANULARITY_BY_DAYS.get(days, DEFAULT_GRANULARITY_S)


def granularity_label(seconds: int) -> str:
    return GRANULARITY_LABELS.get(seconds, f"{seconds}s")


def product_id_for(coin_id: str) -> str | None:
    return COINGECKO_TO_COINBASE.get(coin_id)


class CoinbaseSource:
    """CandleSource implementation backed by the Coinbase Exchange API.

    Args:
        http: Client pointed at the Coinbase Exchange base URL.
        clock: Returns epoch milliseconds; anchors the chunk window.
    """

    def __init__(
        self,
        http: UpstreamHttpClient,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._http = http
        self._clock = clock or now_ms

    @property
    def provider(self) -> Provider:
        return Provider.COINBASE

    def supports(self, coin_id: str, vs_currency: str) -> bool:
        return vs_currency.lower() == "usd" and coin_id in COINGECKO_TO_COINBASE

    async def get_ohlc(
        self,
        coin_id: str,
        days: int,
        vs_currency: str = "usd",
    ) -> OHLCData:
        product_id = product_id_for(coin_id)
        if product_id is None or not self.supports(coin_id, vs_currency):
            raise InvalidRequestError(
                f"Coinbase has no {vs_currency.upper()} product for {coin_id}"
            )

        granularity = granularity_for_days(days)
        end = self._clock() // MS_PER_SECOND
        start = end - days * SECONDS_PER_DAY
        candles_needed = math.ceil(days * SECONDS_PER_DAY / granularity)
        chunks = min(math.ceil(candles_needed / MAX_CANDLES_PER_REQUEST), MAX_CHUNKS)

        rows: list[Any] = []
        current_end = end
        for _ in range(chunks):
            chunk_start = current_end - MAX_CANDLES_PER_REQUEST * granularity
            chunk = await self._http.get_json(
                f"/products/{product_id}/candles",
                {
                    "granularity": granularity,
                    "start": chunk_start,
                    "end": current_end,
                },
            )
            if not isinstance(chunk, list):
                raise UpstreamPayloadError(
                    f"Unexpected candles payload for {product_id}: {type(chunk).__name__}"
                )
            rows.extend(chunk)
            current_end = chunk_start
            if chunk_start <= start:
                break

        try:
            candles = candle_rows_to_candles(rows, since_ms=start * MS_PER_SECOND)
        except _PAYLOAD_ERRORS as e:
            raise UpstreamPayloadError(
                f"Unexpected candles payload for {product_id}: {e}"
            ) from e
        log.debug(
            "coinbase_candles_fetched",
            product_id=product_id,
            granularity=granularity,
            rows=len(rows),
            kept=len(candles),
        )
        return OHLCData(
            candles=candles,
            provider=Provider.COINBASE,
            granularity=granularity_label(granularity),
        )

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
