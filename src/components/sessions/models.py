"""
Sessions component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.entities import ReadingSession

DEFAULT_COMPLETION_PROGRESS_PERCENT = 80.0
DEFAULT_COMPLETION_DURATION_SECONDS = 240.0


@dataclass(frozen=True)
class CompletionPolicy:
    """
    Thresholds for counting a session toward the completion rate.

    A session is completion-eligible when it reached the progress threshold
    OR lasted at least the duration threshold.
    """

    min_progress_percent: float = DEFAULT_COMPLETION_PROGRESS_PERCENT
    min_duration_seconds: float = DEFAULT_COMPLETION_DURATION_SECONDS


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a complete() call."""

    session: ReadingSession
    newly_completed: bool  # False when the session had already been completed
