"""
Events component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.entities import ArticleEvent, ReadingSession, ShareEvent
from src.core.errors import TrackingError


@dataclass(frozen=True)
class ViewResult:
    """
    Outcome of recording an article view.

    The view event is always written. Session attachment is an independent
    effect: when it fails, session_error carries the reason instead of the
    whole call failing.
    """

    event: ArticleEvent
    session: ReadingSession | None = None
    session_started: bool = False
    session_error: TrackingError | None = None


@dataclass(frozen=True)
class ShareResult:
    """Outcome of recording a share."""

    event: ShareEvent
    attached_session_token: str | None = None  # None when recorded unattached
