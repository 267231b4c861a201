"""Study selection: compute only the indicators a chart has enabled.

IndicatorSet is a frozen dataclass holding each enabled study's series plus
the configuration it was computed with. IndicatorCalculator binds a timeframe
and converts raw samples to float at the boundary.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from cryptodash.engine.indicators import (
    BollingerBands,
    MACDResult,
    bollinger_bands,
    macd,
    rsi,
)
from cryptodash.engine.series import IndicatorSeries, sma
from cryptodash.engine.timeframes import (
    BollingerConfig,
    MACDConfig,
    RSIConfig,
    SMAConfig,
    Timeframe,
    get_bollinger_config,
    get_macd_config,
    get_rsi_config,
    get_sma_config,
)


class Study(str, Enum):
    """Chart studies a user can toggle. Values match the stored preference keys."""

    RSI = "rsi"
    SMA = "sma"
    BOLLINGER = "bollingerBands"
    MACD = "macd"

    @classmethod
    def parse_many(cls, names: Iterable[str | Study]) -> frozenset[Study]:
        """Parse study names, raising ValueError on unknown ones."""
        return frozenset(cls(name) for name in names)


ALL_STUDIES = frozenset(Study)


@dataclass(frozen=True)
class SMAPair:
    """Short and long SMA, for golden/death cross reading."""

    short: IndicatorSeries
    long: IndicatorSeries


@dataclass(frozen=True)
class IndicatorSet:
    """Indicator series for one price series and timeframe.

    A field is None when its study was not enabled. An enabled study with too
    little history is still present, as an all-None (or, for RSI, empty) series.
    """

    timeframe: Timeframe
    sample_count: int = 0
    rsi: IndicatorSeries | None = None
    sma: SMAPair | None = None
    macd: MACDResult | None = None
    bollinger: BollingerBands | None = None
    rsi_config: RSIConfig | None = None
    sma_config: SMAConfig | None = None
    macd_config: MACDConfig | None = None
    bollinger_config: BollingerConfig | None = None


class IndicatorCalculator:
    """Computes enabled studies with the periods configured for a timeframe."""

    def __init__(self, timeframe: Timeframe = Timeframe.ONE_WEEK) -> None:
        self._timeframe = timeframe

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    def compute(
        self,
        prices: Sequence[float],
        enabled: Iterable[str | Study] = ALL_STUDIES,
    ) -> IndicatorSet:
        values = [float(p) for p in prices]
        studies = Study.parse_many(enabled)
        tf = self._timeframe

        rsi_conf = get_rsi_config(tf) if Study.RSI in studies else None
        sma_conf = get_sma_config(tf) if Study.SMA in studies else None
        macd_conf = get_macd_config(tf) if Study.MACD in studies else None
        bb_conf = get_bollinger_config(tf) if Study.BOLLINGER in studies else None

        return IndicatorSet(
            timeframe=tf,
            sample_count=len(values),
            rsi=rsi(values, rsi_conf.period) if rsi_conf else None,
            sma=(
                SMAPair(
                    short=sma(values, sma_conf.short_period),
                    long=sma(values, sma_conf.long_period),
                )
                if sma_conf
                else None
            ),
            macd=(
                macd(
                    values,
                    macd_conf.fast_period,
                    macd_conf.slow_period,
                    macd_conf.signal_period,
                )
                if macd_conf
                else None
            ),
            bollinger=(
                bollinger_bands(values, bb_conf.period, bb_conf.multiplier)
                if bb_conf
                else None
            ),
            rsi_config=rsi_conf,
            sma_config=sma_conf,
            macd_config=macd_conf,
            bollinger_config=bb_conf,
        )


def compute_indicators(
    prices: Sequence[float],
    timeframe: Timeframe | str,
    enabled: Iterable[str | Study] = ALL_STUDIES,
) -> IndicatorSet:
    """Compute the enabled studies for `prices` using `timeframe`'s periods."""
    tf = timeframe if isinstance(timeframe, Timeframe) else Timeframe.from_key(timeframe)
    return IndicatorCalculator(tf).compute(prices, enabled)
