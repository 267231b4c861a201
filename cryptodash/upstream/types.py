"""Market data domain types shared across the dashboard core.

Frozen dataclasses for value objects. Prices are float64 (they feed the
indicator engine directly); timestamps are epoch milliseconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from cryptodash.errors import InvalidCandleError


class Provider(str, Enum):
    """Upstream that produced a payload."""

    COINBASE = "coinbase"
    COINGECKO = "coingecko"


class ProviderPreference(str, Enum):
    """Caller's OHLC provider choice. AUTO prefers Coinbase when it can serve."""

    AUTO = "auto"
    COINBASE = "coinbase"
    COINGECKO = "coingecko"


# --- Value Objects (frozen) ---


@dataclass(frozen=True)
class PriceSample:
    """One (epoch-ms, value) point of a market chart series."""

    timestamp: int
    value: float


@dataclass(frozen=True)
class ChartData:
    """Historical market chart: price, market cap and volume series.

    Series are kept in upstream order (ascending by timestamp); duplicate
    timestamps are not collapsed.
    """

    prices: tuple[PriceSample, ...] = ()
    market_caps: tuple[PriceSample, ...] = ()
    total_volumes: tuple[PriceSample, ...] = ()

    def price_values(self) -> list[float]:
        """Price values only, ready for the indicator engine."""
        return [s.value for s in self.prices]

    def latest_price(self) -> PriceSample | None:
        return self.prices[-1] if self.prices else None


@dataclass(frozen=True)
class Candle:
    """OHLC(V) candle. Validated on construction.

    Raises:
        InvalidCandleError: A price is negative or not finite, or
            low > min(open, close) or high < max(open, close).
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None

    def __post_init__(self) -> None:
        prices = (self.open, self.high, self.low, self.close)
        if not all(math.isfinite(p) and p >= 0 for p in prices):
            raise InvalidCandleError(
                f"Candle at {self.timestamp} has non-finite or negative prices: "
                f"{prices}"
            )
        if self.low > min(self.open, self.close) or self.high < max(
            self.open, self.close
        ):
            raise InvalidCandleError(
                f"Candle at {self.timestamp} violates low <= open/close <= high: "
                f"o={self.open} h={self.high} l={self.low} c={self.close}"
            )
        if self.volume is not None and not (
            math.isfinite(self.volume) and self.volume >= 0
        ):
            raise InvalidCandleError(
                f"Candle at {self.timestamp} has invalid volume {self.volume}"
            )


@dataclass(frozen=True)
class OHLCData:
    """Candles plus where they came from and at what resolution."""

    candles: tuple[Candle, ...]
    provider: Provider
    granularity: str

    def close_values(self) -> list[float]:
        return [c.close for c in self.candles]


@dataclass(frozen=True)
class Coin:
    """One row of the market list, ranked by market cap."""

    id: str
    symbol: str
    name: str
    current_price: float | None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    total_volume: float | None = None
    high_24h: float | None = None
    low_24h: float | None = None
    price_change_24h: float | None = None
    price_change_percentage_24h: float | None = None
    price_change_percentage_7d: float | None = None
    price_change_percentage_30d: float | None = None
    image: str = ""
    last_updated: str | None = None


@dataclass(frozen=True)
class CoinSearchResult:
    """Entry of the full coin index used for search."""

    id: str
    name: str
    symbol: str

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on name, symbol or id.

        `needle` must already be lower-cased.
        """
        return (
            needle in self.name.lower()
            or needle in self.symbol.lower()
            or needle in self.id.lower()
        )
