"""Coinbase Exchange candle rows to domain Candles.

Rows arrive as [time_s, low, high, open, close, volume], newest first.
Malformed rows are dropped with a warning.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from cryptodash.errors import InvalidCandleError
from cryptodash.upstream.types import Candle
from cryptodash.utils.time import MS_PER_SECOND

log = structlog.get_logger()


def candle_row_to_candle(row: list[Any]) -> Candle:
    """Convert one Coinbase row. Raises InvalidCandleError on bad OHLC."""
    time_s, low, high, open_, close, volume = row[:6]
    return Candle(
        timestamp=int(time_s) * MS_PER_SECOND,
        open=float(open_),
        high=float(high),
        low=float(low),
        close=float(close),
        volume=float(volume) if volume is not None else None,
    )


def candle_rows_to_candles(
    rows: Iterable[list[Any]],
    *,
    since_ms: int,
) -> tuple[Candle, ...]:
    """Convert, drop rows older than `since_ms`, and sort ascending."""
    candles: list[Candle] = []
    for row in rows:
        try:
            candle = candle_row_to_candle(row)
        except InvalidCandleError as e:
            log.warning("malformed_candle_dropped", provider="coinbase", error=str(e))
            continue
        if candle.timestamp >= since_ms:
            candles.append(candle)
    candles.sort(key=lambda c: c.timestamp)
    return tuple(candles)
