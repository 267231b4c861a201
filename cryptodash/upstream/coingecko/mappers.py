"""CoinGecko JSON payload to domain type converters.

All JSON-to-float conversion happens here. Shape errors surface as
KeyError/TypeError/ValueError/IndexError and are wrapped into
UpstreamPayloadError by the source. Malformed candles are dropped with a
warning instead of failing the whole payload.
"""

from __future__ import annotations

from typing import Any

import structlog

from cryptodash.errors import InvalidCandleError
from cryptodash.upstream.types import (
    Candle,
    ChartData,
    Coin,
    CoinSearchResult,
    PriceSample,
)

log = structlog.get_logger()


def _opt_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _opt_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def market_row_to_coin(row: dict[str, Any]) -> Coin:
    """Convert one /coins/markets row to a Coin."""
    return Coin(
        id=row["id"],
        symbol=row["symbol"],
        name=row["name"],
        current_price=_opt_float(row.get("current_price")),
        market_cap=_opt_float(row.get("market_cap")),
        market_cap_rank=_opt_int(row.get("market_cap_rank")),
        total_volume=_opt_float(row.get("total_volume")),
        high_24h=_opt_float(row.get("high_24h")),
        low_24h=_opt_float(row.get("low_24h")),
        price_change_24h=_opt_float(row.get("price_change_24h")),
        price_change_percentage_24h=_opt_float(
            row.get("price_change_percentage_24h")
        ),
        price_change_percentage_7d=_opt_float(
            row.get("price_change_percentage_7d_in_currency")
        ),
        price_change_percentage_30d=_opt_float(
            row.get("price_change_percentage_30d_in_currency")
        ),
        image=row.get("image") or "",
        last_updated=row.get("last_updated"),
    )


def _series(points: list[list[Any]] | None) -> tuple[PriceSample, ...]:
    return tuple(
        PriceSample(timestamp=int(p[0]), value=float(p[1]))
        for p in points or []
        if p[1] is not None
    )


def market_chart_to_chart_data(payload: dict[str, Any]) -> ChartData:
    """Convert a /coins/{id}/market_chart payload.

    Each series is a list of [epoch_ms, value] pairs. Points with a null
    value are skipped.
    """
    return ChartData(
        prices=_series(payload["prices"]),
        market_caps=_series(payload.get("market_caps")),
        total_volumes=_series(payload.get("total_volumes")),
    )


def ohlc_rows_to_candles(rows: list[list[Any]]) -> tuple[Candle, ...]:
    """Convert /coins/{id}/ohlc rows: [epoch_ms, open, high, low, close]."""
    candles: list[Candle] = []
    for row in rows:
        timestamp, open_, high, low, close = row[:5]
        try:
            candles.append(
                Candle(
                    timestamp=int(timestamp),
                    open=float(open_),
                    high=float(high),
                    low=float(low),
                    close=float(close),
                )
            )
        except InvalidCandleError as e:
            log.warning("malformed_candle_dropped", provider="coingecko", error=str(e))
    return tuple(candles)


def coin_list_entry_to_result(entry: dict[str, Any]) -> CoinSearchResult:
    """Convert one /coins/list entry."""
    return CoinSearchResult(
        id=entry["id"],
        name=entry["name"],
        symbol=entry["symbol"],
    )
