"""
Sessions component - Reading session lifecycle.

States: started -> (heartbeat)* -> completed

Key behaviors:
- start: started_at = last_event_at = now; duplicate tokens rejected
- heartbeat: last_event_at last-writer-wins, progress monotonic (max)
- complete: first write wins; duration = completed_at - started_at, never negative
- unknown tokens surface as UnknownSessionError to the caller
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from src.core.entities import AcquisitionContext, Reader, ReadingSession
from src.core.errors import (
    DuplicateSessionError,
    InvalidSessionTokenError,
    UnknownSessionError,
)

from ._impl import DefaultTimePort
from .models import (
    DEFAULT_COMPLETION_DURATION_SECONDS,
    DEFAULT_COMPLETION_PROGRESS_PERCENT,
    CompletionPolicy,
    CompletionResult,
)
from .ports import ReadingSessionRepoPort, TimePort

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def clamp_progress(progress_percent: float | None) -> float | None:
    """Clamp a progress value to 0-100. None and non-finite values give None."""
    if progress_percent is None:
        return None
    value = float(progress_percent)
    if not math.isfinite(value):
        return None
    return max(0.0, min(100.0, value))


def compute_duration_seconds(started_at: datetime, completed_at: datetime) -> float:
    """Elapsed seconds between start and completion, floored at zero."""
    return max(0.0, (completed_at - started_at).total_seconds())


def is_completion_eligible(
    session: ReadingSession,
    min_progress_percent: float = DEFAULT_COMPLETION_PROGRESS_PERCENT,
    min_duration_seconds: float = DEFAULT_COMPLETION_DURATION_SECONDS,
) -> bool:
    """
    Whether a session counts toward the completion rate.

    Eligible when progress reached the threshold OR the recorded duration
    did. The session does not need to have been explicitly completed.
    """
    if session.progress_percent is not None and session.progress_percent >= min_progress_percent:
        return True
    return session.duration_seconds is not None and session.duration_seconds >= min_duration_seconds


def validate_session_token(session_token: str) -> str:
    """Return the stripped token or raise InvalidSessionTokenError."""
    if not isinstance(session_token, str) or not session_token.strip():
        raise InvalidSessionTokenError("Session token must be a non-empty string")
    return session_token.strip()


# --- Lifecycle Manager ---


class ReadingSessionManager:
    """
    Server-side reading session state machine.

    Concurrency rules live in the repository: apply_heartbeat and
    mark_completed are atomic per session, so out-of-order or retried
    requests never regress progress or overwrite a completion.
    """

    def __init__(
        self,
        repo: ReadingSessionRepoPort,
        time_port: TimePort | None = None,
        policy: CompletionPolicy | None = None,
    ) -> None:
        self._repo = repo
        self._time = time_port or DefaultTimePort()
        self._policy = policy or CompletionPolicy()

    def start_session(
        self,
        session_token: str,
        article_id: str,
        reader: Reader,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession:
        """
        Create a new session.

        Raises:
            InvalidSessionTokenError: token empty
            DuplicateSessionError: token already used
        """
        token = validate_session_token(session_token)
        ctx = context or AcquisitionContext()
        now = self._time.now_utc()

        session = ReadingSession(
            session_token=token,
            article_id=article_id,
            reader=reader,
            started_at=now,
            last_event_at=now,
            referrer=ctx.referrer,
            utm_source=ctx.utm_source,
            utm_medium=ctx.utm_medium,
            utm_campaign=ctx.utm_campaign,
            device_type=ctx.device_type,
        )
        try:
            self._repo.insert(session)
        except DuplicateSessionError:
            logger.warning("Rejected duplicate session token %s", token)
            raise

        logger.debug("Started reading session %s for article %s", token, article_id)
        return session

    def heartbeat(
        self,
        session_token: str,
        progress_percent: float | None = None,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession:
        """
        Record activity on a session.

        Raises:
            UnknownSessionError: no session with this token
        """
        token = validate_session_token(session_token)
        updated = self._repo.apply_heartbeat(
            token,
            self._time.now_utc(),
            progress_percent=clamp_progress(progress_percent),
            context=context,
        )
        if updated is None:
            raise UnknownSessionError(token)
        return updated

    def complete(self, session_token: str) -> CompletionResult:
        """
        Finalize a session. Repeated calls are no-ops.

        Raises:
            UnknownSessionError: no session with this token
        """
        token = validate_session_token(session_token)
        session = self._repo.get_by_token(token)
        if session is None:
            raise UnknownSessionError(token)

        if session.completed_at is not None:
            return CompletionResult(session=session, newly_completed=False)

        completed_at = self._time.now_utc()
        # started_at is immutable, so the duration can be derived outside the CAS
        duration = compute_duration_seconds(session.started_at, completed_at)
        newly_completed = self._repo.mark_completed(token, completed_at, duration)

        current = self._repo.get_by_token(token)
        if current is None:
            raise UnknownSessionError(token)
        if newly_completed:
            logger.debug("Completed reading session %s after %.1fs", token, duration)
        return CompletionResult(session=current, newly_completed=newly_completed)

    def get_session(self, session_token: str) -> ReadingSession | None:
        """Look up a session without creating one."""
        if not session_token or not session_token.strip():
            return None
        return self._repo.get_by_token(session_token.strip())

    def is_eligible(self, session: ReadingSession) -> bool:
        """Completion eligibility under this manager's policy."""
        return is_completion_eligible(
            session,
            self._policy.min_progress_percent,
            self._policy.min_duration_seconds,
        )
