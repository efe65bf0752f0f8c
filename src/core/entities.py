"""
Domain entities for the reading analytics core.

- Reader: tagged variant (guest or registered)
- AcquisitionContext: how the reader arrived at the article
- ReadingSession: one reading attempt of one article (mutable, monotonic)
- ArticleEvent, ShareEvent, EngagementEvent: immutable event records
- ArticleMeta: read-only view of an externally owned article

All timestamps are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.errors import InvalidReaderError

ReaderType = Literal["guest", "registered"]

ArticleEventType = Literal[
    "article_view",
    "reading_session_started",
    "reading_session_heartbeat",
    "reading_session_completed",
    "share",
    "custom",
]

ARTICLE_EVENT_TYPES: frozenset[str] = frozenset(
    {
        "article_view",
        "reading_session_started",
        "reading_session_heartbeat",
        "reading_session_completed",
        "share",
        "custom",
    }
)


# --- Reader (tagged variant) ---


@dataclass(frozen=True)
class GuestReader:
    """Pseudonymous reader keyed by a client-generated visitor key."""

    visitor_key: str

    def __post_init__(self) -> None:
        if not isinstance(self.visitor_key, str) or not self.visitor_key.strip():
            raise InvalidReaderError("Guest reader requires a non-empty visitor_key")

    @property
    def reader_type(self) -> ReaderType:
        return "guest"

    @property
    def user_id(self) -> None:
        return None


@dataclass(frozen=True)
class RegisteredReader:
    """Authenticated reader keyed by an opaque user id."""

    user_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise InvalidReaderError("Registered reader requires a non-empty user_id")

    @property
    def reader_type(self) -> ReaderType:
        return "registered"

    @property
    def visitor_key(self) -> None:
        return None


Reader = GuestReader | RegisteredReader


def reader_from_payload(
    reader_type: str | None,
    user_id: str | None = None,
    visitor_key: str | None = None,
) -> Reader:
    """
    Normalize a loose reader payload into a Reader variant.

    A registered reader must carry a user id; anything else is treated as a
    guest, which must carry a visitor key.
    """
    if reader_type == "registered" and user_id:
        return RegisteredReader(user_id=user_id)
    if reader_type not in (None, "guest", "registered"):
        raise InvalidReaderError(f"Unknown reader type: {reader_type}")
    if not visitor_key:
        raise InvalidReaderError("Reader must identify a registered user or a guest visitor")
    return GuestReader(visitor_key=visitor_key)


# --- Acquisition context ---


@dataclass(frozen=True)
class AcquisitionContext:
    """Acquisition context captured when a session starts."""

    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    device_type: str | None = None

    def as_metadata(self) -> dict[str, str]:
        """Non-empty fields as a flat metadata map."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name)
        }


# --- ReadingSession ---


@dataclass(frozen=False)
class ReadingSession:
    """
    Reading session for one article viewing attempt.

    Invariants:
    - last_event_at >= started_at
    - completed_at is assigned at most once
    - duration_seconds, when present, equals completed_at - started_at and is >= 0
    - progress_percent never decreases

    Lifecycle: started -> (heartbeat)* -> completed
    """

    session_token: str
    article_id: str
    reader: Reader
    started_at: datetime
    last_event_at: datetime
    completed_at: datetime | None = None
    duration_seconds: float | None = None
    progress_percent: float | None = None
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    device_type: str | None = None

    @property
    def reader_type(self) -> ReaderType:
        return self.reader.reader_type

    @property
    def user_id(self) -> str | None:
        return self.reader.user_id

    @property
    def visitor_key(self) -> str | None:
        return self.reader.visitor_key

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def context(self) -> AcquisitionContext:
        return AcquisitionContext(
            referrer=self.referrer,
            utm_source=self.utm_source,
            utm_medium=self.utm_medium,
            utm_campaign=self.utm_campaign,
            device_type=self.device_type,
        )


# --- Events (write-once) ---


class ArticleEvent(BaseModel):
    """Immutable article-level event (views and session lifecycle)."""

    model_config = ConfigDict(frozen=True)

    article_id: str
    event_type: ArticleEventType
    event_timestamp: datetime
    reader_type: ReaderType
    session_token: str | None = None
    user_id: str | None = None
    visitor_key: str | None = None
    metadata: str | None = None  # Serialized JSON


class ShareEvent(BaseModel):
    """Immutable record of a share action."""

    model_config = ConfigDict(frozen=True)

    article_id: str
    channel: str
    event_timestamp: datetime
    reader_type: ReaderType
    session_token: str | None = None
    user_id: str | None = None
    visitor_key: str | None = None
    context: str | None = None  # UI surface that triggered the share
    metadata: str | None = None


class EngagementEvent(BaseModel):
    """Generic UI telemetry not tied to the session state machine."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(min_length=1)
    occurred_at: datetime
    article_id: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    metadata: str | None = None
    duration_ms: int | None = None


# --- External article view ---


@dataclass(frozen=True)
class ArticleMeta:
    """Article attributes the core reads from the content collaborator."""

    id: str
    title: str
    section: str | None = None
    published_at: datetime | None = None
    view_count: int | None = None  # None when no external counter is kept


def reader_fields(reader: Reader) -> dict[str, str | None]:
    """Flatten a reader into the stored event columns."""
    return {
        "reader_type": reader.reader_type,
        "user_id": reader.user_id,
        "visitor_key": reader.visitor_key,
    }
