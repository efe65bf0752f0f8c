"""
In-memory event store and article directory.

Append-only lists guarded by a lock; window scans filter on the event
timestamp with half-open bounds.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from src.core.entities import ArticleEvent, ArticleMeta, EngagementEvent, ShareEvent


def _in_window(ts: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and ts < start:
        return False
    return end is None or ts < end


class InMemoryEventStore:
    """In-memory implementation of EventStorePort."""

    def __init__(self) -> None:
        self._article_events: list[ArticleEvent] = []
        self._share_events: list[ShareEvent] = []
        self._engagement_events: list[EngagementEvent] = []
        self._lock = threading.Lock()

    def append_article_event(self, event: ArticleEvent) -> None:
        with self._lock:
            self._article_events.append(event)

    def append_share_event(self, event: ShareEvent) -> None:
        with self._lock:
            self._share_events.append(event)

    def append_engagement_event(self, event: EngagementEvent) -> None:
        with self._lock:
            self._engagement_events.append(event)

    def list_article_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str | None = None,
    ) -> list[ArticleEvent]:
        with self._lock:
            events = [
                e
                for e in self._article_events
                if _in_window(e.event_timestamp, start, end)
                and (event_type is None or e.event_type == event_type)
            ]
        return sorted(events, key=lambda e: e.event_timestamp)

    def count_article_events(
        self,
        event_type: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        return len(self.list_article_events(start, end, event_type))

    def list_share_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ShareEvent]:
        with self._lock:
            events = [e for e in self._share_events if _in_window(e.event_timestamp, start, end)]
        return sorted(events, key=lambda e: e.event_timestamp)

    def list_engagement_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EngagementEvent]:
        with self._lock:
            events = [
                e for e in self._engagement_events if _in_window(e.occurred_at, start, end)
            ]
        return sorted(events, key=lambda e: e.occurred_at)


class InMemoryArticleDirectory:
    """
    In-memory implementation of ArticleDirectoryPort.

    With track_views=True the directory keeps an external view counter per
    article (view_count starts at 0); otherwise view_count stays None.
    """

    def __init__(self, articles: list[ArticleMeta] | None = None, track_views: bool = False):
        self._articles: dict[str, ArticleMeta] = {}
        self._track_views = track_views
        self._lock = threading.Lock()
        for article in articles or []:
            self.add(article)

    def add(self, article: ArticleMeta) -> None:
        with self._lock:
            if self._track_views and article.view_count is None:
                article = replace(article, view_count=0)
            self._articles[article.id] = article

    def get_article_meta(self, article_id: str) -> ArticleMeta | None:
        with self._lock:
            return self._articles.get(article_id)

    def list_articles(self) -> list[ArticleMeta]:
        with self._lock:
            return list(self._articles.values())

    def increment_view_counter(self, article_id: str) -> None:
        if not self._track_views:
            return
        with self._lock:
            article = self._articles.get(article_id)
            if article is not None:
                self._articles[article_id] = replace(
                    article, view_count=(article.view_count or 0) + 1
                )
