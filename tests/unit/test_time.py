"""Tests for UTC and epoch-millisecond helpers."""

from __future__ import annotations

import time
from datetime import UTC, datetime

import pytest

from cryptodash.utils.time import (
    format_age,
    format_timestamp,
    ms_to_datetime,
    now_ms,
)


class TestUtcHelpers:
    def test_now_ms_tracks_wall_clock(self) -> None:
        assert abs(now_ms() - int(time.time() * 1000)) < 5_000

    def test_ms_to_datetime(self) -> None:
        assert ms_to_datetime(1_770_735_600_000) == datetime(2026, 2, 10, 15, 0, tzinfo=UTC)

    def test_format_timestamp_z_suffix(self) -> None:
        assert format_timestamp(1_770_735_600_123) == "2026-02-10T15:00:00.123Z"


class TestFormatAge:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "0s"), (42, "42s"), (59, "59s"), (60, "1m 0s"), (185, "3m 5s"), (3_725, "62m 5s")],
    )
    def test_format_age(self, seconds: int, expected: str) -> None:
        assert format_age(seconds) == expected
