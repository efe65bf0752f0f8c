"""
Confidence component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_MIN_SESSIONS = 10
DEFAULT_MIN_TIMED_SESSIONS = 5
DEFAULT_MIN_SHARES = 3


@dataclass(frozen=True)
class ConfidencePolicy:
    """Minimum sample sizes below which a statistic is provisional."""

    min_sessions: int = DEFAULT_MIN_SESSIONS  # reader distribution, completion rate
    min_timed_sessions: int = DEFAULT_MIN_TIMED_SESSIONS  # reading time
    min_shares: int = DEFAULT_MIN_SHARES  # share stats (or min_sessions sessions)


@dataclass(frozen=True)
class GatedStat(Generic[T]):
    """
    A derived statistic qualified by its sample size.

    The value is always returned. low_confidence tells the consumer to
    render a caveat; has_data separates "no data" from "measured zero".
    """

    value: T | None
    sample_size: int
    minimum_sample_size: int
    low_confidence: bool

    @property
    def has_data(self) -> bool:
        return self.sample_size > 0 and self.value is not None
