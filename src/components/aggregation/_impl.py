"""
Aggregation helpers: calendar windows and order statistics.

Calendar arithmetic runs on local wall-clock time in the reference
timezone, so DST transitions shift the UTC offsets of the boundaries but
never the local midnights.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta, tzinfo

from .models import WindowBounds


def as_utc(dt: datetime) -> datetime:
    """Normalize a timestamp to aware UTC. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Calendar date of an instant in the reference timezone."""
    return as_utc(dt).astimezone(tz).date()


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def compute_window(now_utc: datetime, tz: tzinfo, window_days: int) -> WindowBounds:
    """
    Compute calendar boundaries for "now" in the reference timezone.

    Raises:
        ValueError: if window_days < 1
    """
    if window_days < 1:
        raise ValueError("window_days must be >= 1")

    now = as_utc(now_utc)
    today = now.astimezone(tz).date()
    month_first = today.replace(day=1)
    last_month_first = (month_first - timedelta(days=1)).replace(day=1)

    def boundary(day: date) -> datetime:
        return _local_midnight(day, tz).astimezone(UTC)

    return WindowBounds(
        now=now,
        today=today,
        today_start=boundary(today),
        tomorrow_start=boundary(today + timedelta(days=1)),
        week_start=boundary(today - timedelta(days=6)),
        month_start=boundary(month_first),
        last_month_start=boundary(last_month_first),
        window_start=boundary(today - timedelta(days=window_days - 1)),
        window_days=window_days,
    )


def mean(values: Sequence[float]) -> float | None:
    """Arithmetic mean, None for empty input."""
    if not values:
        return None
    return sum(values) / len(values)


def percentile(sorted_values: Sequence[float], p: float) -> float | None:
    """
    Nearest-rank percentile of an ascending sequence.

    rank = ceil(p * n), clamped to [1, n]; no interpolation. None for
    empty input.
    """
    if not sorted_values:
        return None
    n = len(sorted_values)
    rank = math.ceil(round(p * n, 9))  # absorb float noise such as 0.9 * 20
    index = min(max(rank, 1), n) - 1
    return float(sorted_values[index])
