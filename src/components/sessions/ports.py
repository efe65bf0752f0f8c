"""
Sessions component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import AcquisitionContext, ReadingSession


class ReadingSessionRepoPort(Protocol):
    """
    Repository for reading sessions.

    Only heartbeat and completion mutate a stored session, and both must be
    applied atomically per row:
    - progress_percent = max(stored, new)
    - completed_at / duration_seconds written only while completed_at is unset
    """

    def insert(self, session: ReadingSession) -> None:
        """
        Insert a new session.

        Raises:
            DuplicateSessionError: if the token already exists
        """
        ...

    def get_by_token(self, session_token: str) -> ReadingSession | None:
        """Get a session by its token."""
        ...

    def apply_heartbeat(
        self,
        session_token: str,
        event_at: datetime,
        progress_percent: float | None = None,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession | None:
        """
        Advance last_event_at, raise progress monotonically, backfill context.

        Returns the updated session, or None if the token is unknown.
        """
        ...

    def mark_completed(
        self,
        session_token: str,
        completed_at: datetime,
        duration_seconds: float,
    ) -> bool:
        """
        Set completion fields if the session is not completed yet.

        Returns True when this call performed the completion.
        """
        ...

    def list_started_between(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> list[ReadingSession]:
        """List sessions with start <= started_at (< end when given)."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
