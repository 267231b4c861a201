"""Engine layer: moving averages, indicators and per-timeframe configuration."""

from cryptodash.engine.calculator import (
    ALL_STUDIES,
    IndicatorCalculator,
    IndicatorSet,
    SMAPair,
    Study,
    compute_indicators,
)
from cryptodash.engine.indicators import (
    BollingerBands,
    MACDResult,
    RSIStatus,
    bollinger_bands,
    latest_value,
    macd,
    period_change,
    rsi,
    rsi_status,
)
from cryptodash.engine.series import EMA, SMA, IndicatorSeries, ema, sma
from cryptodash.engine.timeframes import Timeframe, min_data_points

__all__ = [
    "ALL_STUDIES",
    "EMA",
    "SMA",
    "BollingerBands",
    "IndicatorCalculator",
    "IndicatorSeries",
    "IndicatorSet",
    "MACDResult",
    "RSIStatus",
    "SMAPair",
    "Study",
    "Timeframe",
    "bollinger_bands",
    "compute_indicators",
    "ema",
    "latest_value",
    "macd",
    "min_data_points",
    "period_change",
    "rsi",
    "rsi_status",
    "sma",
]
