"""
In-memory reading session repository.

Used by tests and by single-process deployments that do not need
durability. Mutations are serialized with a lock so concurrent heartbeats
and completions follow the same monotonic rules as the SQLite adapter.
"""

from __future__ import annotations

import threading
from dataclasses import fields, replace
from datetime import UTC, datetime

from src.core.entities import AcquisitionContext, ReadingSession
from src.core.errors import DuplicateSessionError


class DefaultTimePort:
    """Default time provider using system clock."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


def backfill_context(
    session: ReadingSession,
    context: AcquisitionContext | None,
) -> dict[str, str]:
    """Context fields missing on the session that the new context supplies."""
    if context is None:
        return {}
    updates: dict[str, str] = {}
    for f in fields(context):
        value = getattr(context, f.name)
        if value and not getattr(session, f.name):
            updates[f.name] = value
    return updates


class InMemoryReadingSessionRepo:
    """Thread-safe in-memory implementation of ReadingSessionRepoPort."""

    def __init__(self) -> None:
        self._sessions: dict[str, ReadingSession] = {}
        self._lock = threading.Lock()

    def insert(self, session: ReadingSession) -> None:
        with self._lock:
            if session.session_token in self._sessions:
                raise DuplicateSessionError(session.session_token)
            self._sessions[session.session_token] = replace(session)

    def get_by_token(self, session_token: str) -> ReadingSession | None:
        with self._lock:
            stored = self._sessions.get(session_token)
            # Hand out copies so callers cannot bypass the monotonic rules
            return replace(stored) if stored else None

    def apply_heartbeat(
        self,
        session_token: str,
        event_at: datetime,
        progress_percent: float | None = None,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession | None:
        with self._lock:
            stored = self._sessions.get(session_token)
            if stored is None:
                return None

            stored.last_event_at = max(event_at, stored.started_at)
            if progress_percent is not None:
                if stored.progress_percent is None:
                    stored.progress_percent = progress_percent
                else:
                    stored.progress_percent = max(stored.progress_percent, progress_percent)
            for name, value in backfill_context(stored, context).items():
                setattr(stored, name, value)

            return replace(stored)

    def mark_completed(
        self,
        session_token: str,
        completed_at: datetime,
        duration_seconds: float,
    ) -> bool:
        with self._lock:
            stored = self._sessions.get(session_token)
            if stored is None or stored.completed_at is not None:
                return False
            stored.completed_at = completed_at
            stored.duration_seconds = duration_seconds
            stored.last_event_at = max(completed_at, stored.started_at)
            return True

    def list_started_between(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> list[ReadingSession]:
        with self._lock:
            return [
                replace(s)
                for s in self._sessions.values()
                if s.started_at >= start and (end is None or s.started_at < end)
            ]
