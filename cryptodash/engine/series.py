"""Moving averages over ordered float series.

SMA and EMA exist in two forms: streaming classes updated one value at a time, and
list functions that return an IndicatorSeries aligned 1:1 with the input
(None at warm-up positions). The list functions are thin loops over the
streaming classes, so both forms always agree.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from cryptodash.errors import InvalidParameterError

IndicatorSeries = list[float | None]


def check_period(name: str, period: int) -> None:
    """Raise InvalidParameterError unless period >= 1."""
    if period < 1:
        raise InvalidParameterError(f"{name} period must be >= 1, got {period}")


class SMA:
    """Simple Moving Average over a ring buffer of the last `period` values.

    The value is re-summed from the window on every read, so it always equals
    the exact mean of the trailing window with no accumulated float error.
    """

    __slots__ = ("_buf", "_period")

    def __init__(self, period: int) -> None:
        check_period("SMA", period)
        self._period = period
        self._buf: deque[float] = deque(maxlen=period)

    def update(self, value: float) -> None:
        """Add a value. Evicts oldest if at capacity."""
        self._buf.append(value)

    @property
    def value(self) -> float | None:
        """Current SMA, or None if not warm."""
        if len(self._buf) < self._period:
            return None
        return sum(self._buf) / self._period

    @property
    def window(self) -> tuple[float, ...]:
        """Values the current SMA is averaged over, oldest first."""
        return tuple(self._buf)

    @property
    def is_warm(self) -> bool:
        """True when buffer has enough values for a valid SMA."""
        return len(self._buf) >= self._period

    @property
    def count(self) -> int:
        """Number of values currently in the buffer."""
        return len(self._buf)


class EMA:
    """Exponential Moving Average seeded with the SMA of the first period values.

    Multiplier k = 2 / (period + 1). Until `period` values have been seen the
    value is None; the seed lands on the period-th update.
    """

    __slots__ = ("_k", "_period", "_seed", "_value")

    def __init__(self, period: int) -> None:
        check_period("EMA", period)
        self._period = period
        self._k = 2.0 / (period + 1)
        self._seed = SMA(period)
        self._value: float | None = None

    def update(self, value: float) -> None:
        if self._value is None:
            self._seed.update(value)
            self._value = self._seed.value
            return
        self._value = (value - self._value) * self._k + self._value

    @property
    def value(self) -> float | None:
        """Current EMA, or None during warm-up."""
        return self._value

    @property
    def multiplier(self) -> float:
        return self._k

    @property
    def is_warm(self) -> bool:
        return self._value is not None


def sma(values: Sequence[float], period: int) -> IndicatorSeries:
    """Simple moving average, None for the first period-1 positions.

    >>> sma([1, 2, 3, 4, 5], 3)
    [None, None, 2.0, 3.0, 4.0]
    """
    calc = SMA(period)
    out: IndicatorSeries = []
    for v in values:
        calc.update(float(v))
        out.append(calc.value)
    return out


def ema(values: Sequence[float], period: int) -> IndicatorSeries:
    """Exponential moving average, None for the first period-1 positions.

    Shorter inputs than `period` yield an all-None series of the same length.
    """
    calc = EMA(period)
    out: IndicatorSeries = []
    for v in values:
        calc.update(float(v))
        out.append(calc.value)
    return out
