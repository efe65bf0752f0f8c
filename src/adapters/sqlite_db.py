"""
SQLite Database Adapter.

Implements the reading session repository, the event store and the
article directory using SQLite. Uses standard SQL patterns only.

Timestamps are stored as ISO-8601 UTC strings with a fixed layout so that
string comparison matches chronological order.

Session mutations are single conditional UPDATE statements:
- progress_percent = MAX(stored, new)
- completed_at written only WHERE completed_at IS NULL
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from src.core.entities import (
    AcquisitionContext,
    ArticleEvent,
    ArticleMeta,
    EngagementEvent,
    ReadingSession,
    ShareEvent,
    reader_from_payload,
)
from src.core.errors import DuplicateSessionError

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime | None) -> str | None:
    """Format a datetime as a fixed-width ISO UTC string."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string (naive values are taken as UTC)."""
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def _window_clause(column: str, start: datetime | None, end: datetime | None) -> tuple[str, list]:
    clause = ""
    params: list[Any] = []
    if start is not None:
        clause += f" AND {column} >= ?"
        params.append(format_dt(start))
    if end is not None:
        clause += f" AND {column} < ?"
        params.append(format_dt(end))
    return clause, params


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Reading Session Repository
# -----------------------------------------------------------------------------


class SQLiteReadingSessionRepo(SQLiteRepoBase):
    """SQLite implementation of ReadingSessionRepoPort."""

    def insert(self, session: ReadingSession) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO reading_sessions (
                    session_token, article_id, reader_type, user_id, visitor_key,
                    started_at, last_event_at, completed_at, duration_seconds,
                    progress_percent, referrer, utm_source, utm_medium,
                    utm_campaign, device_type
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.session_token,
                    session.article_id,
                    session.reader_type,
                    session.user_id,
                    session.visitor_key,
                    format_dt(session.started_at),
                    format_dt(session.last_event_at),
                    format_dt(session.completed_at),
                    session.duration_seconds,
                    session.progress_percent,
                    session.referrer,
                    session.utm_source,
                    session.utm_medium,
                    session.utm_campaign,
                    session.device_type,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "reading_sessions.session_token" in str(e) or "UNIQUE" in str(e):
                raise DuplicateSessionError(session.session_token) from e
            raise
        finally:
            if self._should_close():
                conn.close()

    def get_by_token(self, session_token: str) -> ReadingSession | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM reading_sessions WHERE session_token = ?", (session_token,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def apply_heartbeat(
        self,
        session_token: str,
        event_at: datetime,
        progress_percent: float | None = None,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession | None:
        ctx = context or AcquisitionContext()
        event_ts = format_dt(event_at)
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE reading_sessions SET
                    last_event_at = CASE WHEN ? > started_at THEN ? ELSE started_at END,
                    progress_percent = CASE
                        WHEN ? IS NULL THEN progress_percent
                        WHEN progress_percent IS NULL THEN ?
                        ELSE MAX(progress_percent, ?)
                    END,
                    referrer = COALESCE(referrer, ?),
                    utm_source = COALESCE(utm_source, ?),
                    utm_medium = COALESCE(utm_medium, ?),
                    utm_campaign = COALESCE(utm_campaign, ?),
                    device_type = COALESCE(device_type, ?)
                WHERE session_token = ?
                """,
                (
                    event_ts,
                    event_ts,
                    progress_percent,
                    progress_percent,
                    progress_percent,
                    ctx.referrer or None,
                    ctx.utm_source or None,
                    ctx.utm_medium or None,
                    ctx.utm_campaign or None,
                    ctx.device_type or None,
                    session_token,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None

            row = conn.execute(
                "SELECT * FROM reading_sessions WHERE session_token = ?", (session_token,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def mark_completed(
        self,
        session_token: str,
        completed_at: datetime,
        duration_seconds: float,
    ) -> bool:
        completed_ts = format_dt(completed_at)
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE reading_sessions SET
                    completed_at = ?,
                    duration_seconds = ?,
                    last_event_at = CASE WHEN ? > started_at THEN ? ELSE started_at END
                WHERE session_token = ? AND completed_at IS NULL
                """,
                (completed_ts, duration_seconds, completed_ts, completed_ts, session_token),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def list_started_between(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> list[ReadingSession]:
        clause, params = _window_clause("started_at", start, end)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM reading_sessions WHERE 1=1{clause} ORDER BY started_at",
                params,
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ReadingSession:
        return ReadingSession(
            session_token=row["session_token"],
            article_id=row["article_id"],
            reader=reader_from_payload(row["reader_type"], row["user_id"], row["visitor_key"]),
            started_at=parse_dt(row["started_at"]),  # type: ignore
            last_event_at=parse_dt(row["last_event_at"]),  # type: ignore
            completed_at=parse_dt(row["completed_at"]),
            duration_seconds=row["duration_seconds"],
            progress_percent=row["progress_percent"],
            referrer=row["referrer"],
            utm_source=row["utm_source"],
            utm_medium=row["utm_medium"],
            utm_campaign=row["utm_campaign"],
            device_type=row["device_type"],
        )


# -----------------------------------------------------------------------------
# Event Store
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """SQLite implementation of EventStorePort (append-only)."""

    def append_article_event(self, event: ArticleEvent) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO article_events (
                    article_id, event_type, session_token, reader_type,
                    user_id, visitor_key, metadata, event_timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.article_id,
                    event.event_type,
                    event.session_token,
                    event.reader_type,
                    event.user_id,
                    event.visitor_key,
                    event.metadata,
                    format_dt(event.event_timestamp),
                ),
            )
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def append_share_event(self, event: ShareEvent) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO share_events (
                    article_id, session_token, channel, reader_type, user_id,
                    visitor_key, context, metadata, event_timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.article_id,
                    event.session_token,
                    event.channel,
                    event.reader_type,
                    event.user_id,
                    event.visitor_key,
                    event.context,
                    event.metadata,
                    format_dt(event.event_timestamp),
                ),
            )
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def append_engagement_event(self, event: EngagementEvent) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO engagement_events (
                    event_type, article_id, user_id, session_id,
                    metadata, duration_ms, occurred_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.event_type,
                    event.article_id,
                    event.user_id,
                    event.session_id,
                    event.metadata,
                    event.duration_ms,
                    format_dt(event.occurred_at),
                ),
            )
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def list_article_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str | None = None,
    ) -> list[ArticleEvent]:
        clause, params = _window_clause("event_timestamp", start, end)
        if event_type is not None:
            clause += " AND event_type = ?"
            params.append(event_type)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM article_events WHERE 1=1{clause} ORDER BY event_timestamp, id",
                params,
            ).fetchall()
            return [
                ArticleEvent(
                    article_id=r["article_id"],
                    event_type=r["event_type"],
                    event_timestamp=parse_dt(r["event_timestamp"]),
                    reader_type=r["reader_type"],
                    session_token=r["session_token"],
                    user_id=r["user_id"],
                    visitor_key=r["visitor_key"],
                    metadata=r["metadata"],
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()

    def count_article_events(
        self,
        event_type: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        clause, params = _window_clause("event_timestamp", start, end)
        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT COUNT(*) AS n FROM article_events WHERE event_type = ?{clause}",
                [event_type, *params],
            ).fetchone()
            return row["n"] if row else 0
        finally:
            if self._should_close():
                conn.close()

    def list_share_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ShareEvent]:
        clause, params = _window_clause("event_timestamp", start, end)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM share_events WHERE 1=1{clause} ORDER BY event_timestamp, id",
                params,
            ).fetchall()
            return [
                ShareEvent(
                    article_id=r["article_id"],
                    channel=r["channel"],
                    event_timestamp=parse_dt(r["event_timestamp"]),
                    reader_type=r["reader_type"],
                    session_token=r["session_token"],
                    user_id=r["user_id"],
                    visitor_key=r["visitor_key"],
                    context=r["context"],
                    metadata=r["metadata"],
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()

    def list_engagement_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EngagementEvent]:
        clause, params = _window_clause("occurred_at", start, end)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM engagement_events WHERE 1=1{clause} ORDER BY occurred_at, id",
                params,
            ).fetchall()
            return [
                EngagementEvent(
                    event_type=r["event_type"],
                    occurred_at=parse_dt(r["occurred_at"]),
                    article_id=r["article_id"],
                    user_id=r["user_id"],
                    session_id=r["session_id"],
                    metadata=r["metadata"],
                    duration_ms=r["duration_ms"],
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Article Directory
# -----------------------------------------------------------------------------


class SQLiteArticleDirectory(SQLiteRepoBase):
    """
    SQLite implementation of ArticleDirectoryPort over the articles table.

    The table is owned by the content collaborator; save() exists for
    seeding and tests.
    """

    def get_article_meta(self, article_id: str) -> ArticleMeta | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM articles WHERE id = ?", (article_id,)).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_articles(self) -> list[ArticleMeta]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM articles ORDER BY id").fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def increment_view_counter(self, article_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE articles SET view_count = view_count + 1 "
                "WHERE id = ? AND view_count IS NOT NULL",
                (article_id,),
            )
            conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def save(self, article: ArticleMeta) -> ArticleMeta:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO articles (id, title, section, published_at, view_count)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    section=excluded.section,
                    published_at=excluded.published_at
                """,
                (
                    article.id,
                    article.title,
                    article.section,
                    format_dt(article.published_at),
                    article.view_count,
                ),
            )
            conn.commit()
            return article
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ArticleMeta:
        return ArticleMeta(
            id=row["id"],
            title=row["title"],
            section=row["section"],
            published_at=parse_dt(row["published_at"]),
            view_count=row["view_count"],
        )
