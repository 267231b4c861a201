"""Per-timeframe indicator parameters and study descriptions.

Tables are keyed by Timeframe and cover every member; a unit test enforces
that, so adding a timeframe fails loudly until every table has a row. Keys
arriving as strings go through Timeframe.from_key(), whose documented default
for unknown keys is ONE_WEEK.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class Timeframe(str, Enum):
    """Chart window in days, matching the upstream `days` query value."""

    ONE_DAY = "1"
    ONE_WEEK = "7"
    ONE_MONTH = "30"
    ONE_YEAR = "365"

    @classmethod
    def from_key(cls, key: str | int | None) -> Timeframe:
        """Parse "1"/"7"/"30"/"365"; anything else falls back to ONE_WEEK."""
        if key is None:
            return DEFAULT_TIMEFRAME
        try:
            return cls(str(key).strip())
        except ValueError:
            return DEFAULT_TIMEFRAME

    @property
    def days(self) -> int:
        return int(self.value)

    @property
    def label(self) -> str:
        return _LABELS[self]


DEFAULT_TIMEFRAME = Timeframe.ONE_WEEK

_LABELS: Mapping[Timeframe, str] = MappingProxyType(
    {
        Timeframe.ONE_DAY: "24h",
        Timeframe.ONE_WEEK: "7d",
        Timeframe.ONE_MONTH: "30d",
        Timeframe.ONE_YEAR: "1y",
    }
)


@dataclass(frozen=True)
class RSIConfig:
    period: int
    description: str
    rationale: str


@dataclass(frozen=True)
class SMAConfig:
    short_period: int
    long_period: int
    description: str


@dataclass(frozen=True)
class MACDConfig:
    fast_period: int
    slow_period: int
    signal_period: int
    description: str


@dataclass(frozen=True)
class BollingerConfig:
    period: int
    multiplier: float
    description: str


@dataclass(frozen=True)
class IndicatorInfo:
    """Tooltip copy for a study."""

    title: str
    description: str
    source: str
    levels: Mapping[str, str] = field(default_factory=dict)


RSI_CONFIG: Mapping[Timeframe, RSIConfig] = MappingProxyType(
    {
        Timeframe.ONE_DAY: RSIConfig(
            period=9,
            description=(
                "RSI(9) - Shorter period for intraday analysis. More responsive "
                "to price changes, ideal for capturing quick momentum shifts in "
                "24-hour data."
            ),
            rationale=(
                "With hourly data points over 24 hours, a 9-period RSI provides "
                "sensitivity to short-term momentum while reducing noise "
                "compared to even shorter periods."
            ),
        ),
        Timeframe.ONE_WEEK: RSIConfig(
            period=14,
            description=(
                "RSI(14) - Standard period recommended by J. Welles Wilder. "
                "Balanced response suitable for weekly swing trading analysis."
            ),
            rationale=(
                "The default 14-period setting provides a good balance between "
                "sensitivity and reliability for week-long price movements."
            ),
        ),
        Timeframe.ONE_MONTH: RSIConfig(
            period=14,
            description=(
                "RSI(14) - Standard period for monthly analysis. Captures "
                "medium-term momentum trends effectively."
            ),
            rationale=(
                "For 30-day analysis, the standard 14-period RSI remains "
                "effective as it balances responsiveness with signal reliability."
            ),
        ),
        Timeframe.ONE_YEAR: RSIConfig(
            period=21,
            description=(
                "RSI(21) - Extended period for long-term trend analysis. "
                "Smoother signals that filter out short-term noise."
            ),
            rationale=(
                "Longer periods reduce false signals and better identify major "
                "trend reversals in yearly data."
            ),
        ),
    }
)

SMA_CONFIG: Mapping[Timeframe, SMAConfig] = MappingProxyType(
    {
        Timeframe.ONE_DAY: SMAConfig(
            10, 20, "SMA(10/20) - Shorter periods for intraday analysis"
        ),
        Timeframe.ONE_WEEK: SMAConfig(
            20, 50, "SMA(20/50) - Standard periods for weekly swing trading"
        ),
        Timeframe.ONE_MONTH: SMAConfig(
            20, 50, "SMA(20/50) - Medium-term trend identification"
        ),
        Timeframe.ONE_YEAR: SMAConfig(
            50, 200, "SMA(50/200) - Golden/Death Cross analysis for long-term trends"
        ),
    }
)

MACD_CONFIG: Mapping[Timeframe, MACDConfig] = MappingProxyType(
    {
        Timeframe.ONE_DAY: MACDConfig(
            8, 17, 9, "MACD(8/17/9) - Faster response for intraday"
        ),
        Timeframe.ONE_WEEK: MACDConfig(12, 26, 9, "MACD(12/26/9) - Standard settings"),
        Timeframe.ONE_MONTH: MACDConfig(12, 26, 9, "MACD(12/26/9) - Standard settings"),
        Timeframe.ONE_YEAR: MACDConfig(12, 26, 9, "MACD(12/26/9) - Standard settings"),
    }
)

BOLLINGER_CONFIG: Mapping[Timeframe, BollingerConfig] = MappingProxyType(
    {
        Timeframe.ONE_DAY: BollingerConfig(
            10, 2.0, "BB(10,2) - Shorter period for intraday volatility"
        ),
        Timeframe.ONE_WEEK: BollingerConfig(20, 2.0, "BB(20,2) - Standard settings"),
        Timeframe.ONE_MONTH: BollingerConfig(20, 2.0, "BB(20,2) - Standard settings"),
        Timeframe.ONE_YEAR: BollingerConfig(20, 2.0, "BB(20,2) - Standard settings"),
    }
)

RSI_INFO = IndicatorInfo(
    title="Relative Strength Index (RSI)",
    description=(
        "A momentum oscillator measuring the speed and magnitude of price "
        "changes to identify overbought or oversold conditions."
    ),
    source="https://www.investopedia.com/terms/r/rsi.asp",
    levels=MappingProxyType(
        {
            "overbought": "RSI > 70: Asset may be overbought. In uptrends, this "
            "can indicate strong momentum rather than an immediate reversal.",
            "oversold": "RSI < 30: Asset may be oversold. In downtrends, prices "
            "can remain oversold for extended periods.",
            "neutral": "RSI = 50: Neutral point. Above 50 suggests bullish "
            "momentum, below 50 suggests bearish momentum.",
        }
    ),
)

SMA_INFO = IndicatorInfo(
    title="Simple Moving Average (SMA)",
    description=(
        "Average price over a specified period. Short SMA crossing above Long "
        "SMA = Golden Cross (bullish). Opposite = Death Cross (bearish)."
    ),
    source="https://www.investopedia.com/terms/s/sma.asp",
)

MACD_INFO = IndicatorInfo(
    title="Moving Average Convergence Divergence (MACD)",
    description=(
        "Momentum indicator showing relationship between two EMAs. MACD "
        "crossing above Signal = bullish. Histogram shows momentum strength."
    ),
    source="https://www.investopedia.com/terms/m/macd.asp",
)

BOLLINGER_INFO = IndicatorInfo(
    title="Bollinger Bands",
    description=(
        "Volatility indicator with upper/lower bands 2 standard deviations from "
        "SMA. Price near upper band = potentially overbought. Squeeze = low "
        "volatility, potential breakout."
    ),
    source="https://www.investopedia.com/terms/b/bollingerbands.asp",
)


def get_rsi_config(timeframe: Timeframe) -> RSIConfig:
    return RSI_CONFIG[timeframe]


def get_sma_config(timeframe: Timeframe) -> SMAConfig:
    return SMA_CONFIG[timeframe]


def get_macd_config(timeframe: Timeframe) -> MACDConfig:
    return MACD_CONFIG[timeframe]


def get_bollinger_config(timeframe: Timeframe) -> BollingerConfig:
    return BOLLINGER_CONFIG[timeframe]


def min_data_points(timeframe: Timeframe) -> dict[str, int]:
    """Samples each study needs before it shows a value for this timeframe."""
    sma_conf = SMA_CONFIG[timeframe]
    macd_conf = MACD_CONFIG[timeframe]
    return {
        "rsi": RSI_CONFIG[timeframe].period + 1,
        "sma": sma_conf.long_period,
        "macd": macd_conf.slow_period + macd_conf.signal_period,
        "bollinger": BOLLINGER_CONFIG[timeframe].period,
    }
