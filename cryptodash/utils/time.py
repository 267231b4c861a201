"""UTC and epoch-millisecond helpers.

Upstream APIs and cache entries speak epoch milliseconds; datetimes only
appear at the display edge. All datetimes are UTC.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

MS_PER_SECOND = 1_000


def now_ms() -> int:
    """Return the current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(ms: int) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(ms / MS_PER_SECOND, tz=UTC)


def format_timestamp(ms: int) -> str:
    """Format epoch milliseconds as ISO 8601 with a Z suffix.

    Output format: YYYY-MM-DDTHH:MM:SS.fffZ
    """
    dt = ms_to_datetime(ms)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % MS_PER_SECOND:03d}Z"


def format_age(age_sec: int) -> str:
    """Render an age in seconds as "42s" or "3m 5s"."""
    if age_sec < 60:
        return f"{age_sec}s"
    return f"{age_sec // 60}m {age_sec % 60}s"
