"""Technical indicators built on the series utilities.

All functions are pure: no I/O, no hidden state, identical input gives
bit-identical output. Every returned series is aligned 1:1 with the input
prices, with None at warm-up positions. The one exception is rsi(), which
returns an empty list when there are not even period + 1 prices; callers
treat that as "not yet computable", not as a failure.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from cryptodash.engine.series import SMA, IndicatorSeries, check_period, ema
from cryptodash.errors import InvalidParameterError

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0


class RSIStatus(str, Enum):
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram, all aligned with the input."""

    macd_line: IndicatorSeries
    signal_line: IndicatorSeries
    histogram: IndicatorSeries


@dataclass(frozen=True)
class BollingerBands:
    """Upper/middle/lower bands, all aligned with the input."""

    upper: IndicatorSeries
    middle: IndicatorSeries
    lower: IndicatorSeries


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    # An all-gains window is maximally overbought, not undefined.
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(prices: Sequence[float], period: int = 14) -> IndicatorSeries:
    """Relative Strength Index with Wilder smoothing.

    The first value sits at index `period` (one price per consumed change
    plus the starting price); earlier positions are None.

    Args:
        prices: Ordered price samples, oldest first.
        period: Look-back window, >= 1.

    Returns:
        A series of len(prices), or [] when len(prices) < period + 1.
    """
    check_period("RSI", period)
    if len(prices) < period + 1:
        return []

    changes = [float(prices[i]) - float(prices[i - 1]) for i in range(1, len(prices))]

    avg_gain = 0.0
    avg_loss = 0.0
    for change in changes[:period]:
        if change > 0:
            avg_gain += change
        else:
            avg_loss += abs(change)
    avg_gain /= period
    avg_loss /= period

    out: IndicatorSeries = [None] * period
    out.append(_rsi_from_averages(avg_gain, avg_loss))

    for change in changes[period:]:
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        out.append(_rsi_from_averages(avg_gain, avg_loss))

    return out


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence.

    The MACD line has slow-1 leading Nones, and EMA needs a gap-free input,
    so the valid MACD values are compacted before the signal EMA and the
    signal values are scattered back onto their original indices.
    """
    check_period("MACD fast", fast)
    check_period("MACD slow", slow)
    check_period("MACD signal", signal)
    if fast >= slow:
        raise InvalidParameterError(
            f"MACD fast period must be < slow period, got {fast} >= {slow}"
        )

    fast_ema = ema(prices, fast)
    slow_ema = ema(prices, slow)

    macd_line: IndicatorSeries = [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast_ema, slow_ema)
    ]

    valid_indices = [i for i, v in enumerate(macd_line) if v is not None]
    compacted = [macd_line[i] for i in valid_indices]
    signal_compact = ema(compacted, signal)  # type: ignore[arg-type]

    signal_line: IndicatorSeries = [None] * len(prices)
    for idx, value in zip(valid_indices, signal_compact):
        signal_line[idx] = value

    histogram: IndicatorSeries = [
        m - s if m is not None and s is not None else None
        for m, s in zip(macd_line, signal_line)
    ]

    return MACDResult(macd_line=macd_line, signal_line=signal_line, histogram=histogram)


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    multiplier: float = 2.0,
) -> BollingerBands:
    """SMA envelope at +/- multiplier population standard deviations.

    Variance divides by `period`, not `period - 1`, matching the usual
    charting formulas.
    """
    check_period("Bollinger", period)
    if multiplier < 0:
        raise InvalidParameterError(
            f"Bollinger multiplier must be >= 0, got {multiplier}"
        )

    window = SMA(period)
    upper: IndicatorSeries = []
    middle: IndicatorSeries = []
    lower: IndicatorSeries = []

    for price in prices:
        window.update(float(price))
        mean = window.value
        if mean is None:
            upper.append(None)
            middle.append(None)
            lower.append(None)
            continue
        variance = sum((v - mean) ** 2 for v in window.window) / period
        width = multiplier * math.sqrt(variance)
        upper.append(mean + width)
        middle.append(mean)
        lower.append(mean - width)

    return BollingerBands(upper=upper, middle=middle, lower=lower)


def period_change(prices: Sequence[float]) -> float | None:
    """Percent change from the first to the last price.

    None for fewer than two prices or a zero starting price.
    """
    if len(prices) < 2 or prices[0] == 0:
        return None
    first = float(prices[0])
    return (float(prices[-1]) - first) / first * 100.0


def latest_value(series: Sequence[float | None]) -> float | None:
    """Last non-None value of a series, or None."""
    for value in reversed(series):
        if value is not None:
            return value
    return None


def rsi_status(value: float | None) -> RSIStatus:
    """Classify an RSI reading. Missing readings are neutral."""
    if value is None:
        return RSIStatus.NEUTRAL
    if value > RSI_OVERBOUGHT:
        return RSIStatus.OVERBOUGHT
    if value < RSI_OVERSOLD:
        return RSIStatus.OVERSOLD
    return RSIStatus.NEUTRAL


def has_enough_data(length: int, required: int) -> bool:
    return length >= required
