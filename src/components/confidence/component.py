"""
Confidence component - Sample-size gating for derived statistics.

Below threshold a statistic is still returned, flagged low-confidence.
"""

from __future__ import annotations

from typing import TypeVar

from .models import ConfidencePolicy, GatedStat

T = TypeVar("T")


def is_low_confidence(sample_size: int, minimum: int) -> bool:
    return sample_size < minimum


def gate(value: T | None, sample_size: int, minimum: int) -> GatedStat[T]:
    """Wrap a value with its sample size and confidence flag."""
    return GatedStat(
        value=value,
        sample_size=sample_size,
        minimum_sample_size=minimum,
        low_confidence=is_low_confidence(sample_size, minimum),
    )


def gate_sessions(
    value: T | None, session_count: int, policy: ConfidencePolicy | None = None
) -> GatedStat[T]:
    """Session-based distributions (reader split, completion rate)."""
    policy = policy or ConfidencePolicy()
    return gate(value, session_count, policy.min_sessions)


def gate_reading_time(
    value: T | None, timed_session_count: int, policy: ConfidencePolicy | None = None
) -> GatedStat[T]:
    """Reading-time statistics, counted over sessions with a duration."""
    policy = policy or ConfidencePolicy()
    return gate(value, timed_session_count, policy.min_timed_sessions)


def share_stats_confident(
    share_count: int, session_count: int, policy: ConfidencePolicy | None = None
) -> bool:
    """Share stats are non-provisional with enough shares OR enough sessions."""
    policy = policy or ConfidencePolicy()
    return share_count >= policy.min_shares or session_count >= policy.min_sessions


def gate_shares(
    value: T | None,
    share_count: int,
    session_count: int,
    policy: ConfidencePolicy | None = None,
) -> GatedStat[T]:
    """
    Share statistics.

    sample_size reports the share count; the session denominator can lift
    the low-confidence flag on its own.
    """
    policy = policy or ConfidencePolicy()
    return GatedStat(
        value=value,
        sample_size=share_count,
        minimum_sample_size=policy.min_shares,
        low_confidence=not share_stats_confident(share_count, session_count, policy),
    )
