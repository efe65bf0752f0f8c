"""
Storage interfaces shared across components.

Protocol-based interfaces for the event log and the external article
collaborator. Implementations: in-memory (tests) and SQLite.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import ArticleEvent, ArticleMeta, EngagementEvent, ShareEvent

# -----------------------------------------------------------------------------
# Event Store
# -----------------------------------------------------------------------------


class EventStorePort(Protocol):
    """
    Append-only store for the three event families.

    Invariants:
    - Events are write-once; there is no update or delete
    - Window scans are half-open: start <= timestamp < end
    """

    def append_article_event(self, event: ArticleEvent) -> None:
        """Append an article event."""
        ...

    def append_share_event(self, event: ShareEvent) -> None:
        """Append a share event."""
        ...

    def append_engagement_event(self, event: EngagementEvent) -> None:
        """Append a generic engagement event."""
        ...

    def list_article_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str | None = None,
    ) -> list[ArticleEvent]:
        """List article events in a window, oldest first."""
        ...

    def count_article_events(
        self,
        event_type: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """Count article events of one type in a window."""
        ...

    def list_share_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ShareEvent]:
        """List share events in a window, oldest first."""
        ...

    def list_engagement_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EngagementEvent]:
        """List engagement events in a window, oldest first."""
        ...


# -----------------------------------------------------------------------------
# Article collaborator
# -----------------------------------------------------------------------------


class ArticleDirectoryPort(Protocol):
    """
    Read-only view of the externally owned articles.

    The only write is the optional view counter increment.
    """

    def get_article_meta(self, article_id: str) -> ArticleMeta | None:
        """Get id/title/section for an article."""
        ...

    def list_articles(self) -> list[ArticleMeta]:
        """List all known articles."""
        ...

    def increment_view_counter(self, article_id: str) -> None:
        """Bump the external view counter, if one is kept."""
        ...
