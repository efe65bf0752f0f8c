"""
Events component - Server-side tracking facade over the event log.

Writes the three event families and coordinates them with the session
lifecycle manager.

Key behaviors:
- Session lifecycle calls log a matching article event after the session
  store has been updated; the session store stays authoritative
- Independent effects are not aborted by session errors (a view is
  recorded even when attaching it to a session fails)
- Metadata is serialized defensively; unserializable metadata is omitted,
  the event itself is still recorded
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from src.components.sessions import CompletionResult, ReadingSessionManager
from src.core.entities import (
    AcquisitionContext,
    ArticleEvent,
    ArticleEventType,
    EngagementEvent,
    Reader,
    ReadingSession,
    ShareEvent,
    reader_fields,
)
from src.core.errors import SerializationError, TrackingError, UnknownSessionError
from src.core.services.metadata import (
    DEFAULT_LIMITS,
    MetadataLimits,
    encode_metadata,
    safe_serialize,
    unknown_keys,
)

from .models import ShareResult, ViewResult
from .ports import ArticleDirectoryPort, EventStorePort, TimePort

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def parse_share_extra(metadata_json: str | None) -> Any:
    """
    Decode the client-supplied share payload.

    Primitive JSON values are kept as-is; objects and arrays stay in their
    raw string form so the metadata map remains flat. Unparseable input is
    kept as the raw string.
    """
    if metadata_json is None or metadata_json == "":
        return None
    try:
        parsed = json.loads(metadata_json)
    except ValueError:
        return metadata_json
    if isinstance(parsed, (dict, list)):
        return metadata_json
    return parsed


def build_share_metadata(
    channel: str,
    context: str | None,
    metadata_json: str | None,
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> str | None:
    """Serialize {channel, context, extra}; drop extra if it does not fit."""
    metadata = {
        "channel": channel,
        "context": context,
        "extra": parse_share_extra(metadata_json),
    }
    try:
        return encode_metadata(metadata, limits)
    except SerializationError as e:
        logger.warning("Share metadata extra dropped: %s", e)
        metadata.pop("extra")
        return safe_serialize(metadata, limits)


def parse_engagement_metadata(
    raw: str | None,
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> str | None:
    """
    Re-validate metadata that arrived already serialized.

    The string must decode to a JSON object that fits the bounds; anything
    else is omitted.
    """
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Dropping event metadata: not valid JSON")
        return None
    if not isinstance(parsed, dict):
        logger.warning("Dropping event metadata: expected a JSON object")
        return None
    return safe_serialize(parsed, limits)


def to_utc(dt: datetime) -> datetime:
    """Aware UTC timestamp. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def session_event_metadata(
    event_type: str,
    metadata: Mapping[str, Any],
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> str | None:
    unknown_keys(event_type, metadata)
    return safe_serialize(metadata, limits)


# --- Tracking Facade ---


class TrackingService:
    """
    Server-side tracking API.

    Exposes the record/start/heartbeat/complete operations consumed by the
    HTTP routes, the in-process transport and the CLI.
    """

    def __init__(
        self,
        sessions: ReadingSessionManager,
        events: EventStorePort,
        articles: ArticleDirectoryPort | None = None,
        time_port: TimePort | None = None,
        limits: MetadataLimits = DEFAULT_LIMITS,
    ) -> None:
        self._sessions = sessions
        self._events = events
        self._articles = articles
        self._time = time_port
        self._limits = limits

    @property
    def sessions(self) -> ReadingSessionManager:
        return self._sessions

    def _now(self) -> datetime:
        if self._time is not None:
            return self._time.now_utc()
        return datetime.now(UTC)

    def _log_article_event(
        self,
        event_type: ArticleEventType,
        article_id: str,
        reader: Reader,
        session_token: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ArticleEvent:
        encoded = None
        if metadata:
            encoded = session_event_metadata(event_type, metadata, self._limits)
        event = ArticleEvent(
            article_id=article_id,
            event_type=event_type,
            event_timestamp=self._now(),
            session_token=session_token,
            metadata=encoded,
            **reader_fields(reader),
        )
        self._events.append_article_event(event)
        return event

    # --- Session lifecycle ---

    def start_reading_session(
        self,
        session_token: str,
        article_id: str,
        reader: Reader,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession:
        """
        Start a session and log reading_session_started.

        Raises:
            DuplicateSessionError, InvalidSessionTokenError
        """
        session = self._sessions.start_session(session_token, article_id, reader, context)
        self._log_article_event(
            "reading_session_started",
            article_id,
            reader,
            session_token=session.session_token,
            metadata=session.context.as_metadata(),
        )
        return session

    def heartbeat(
        self,
        session_token: str,
        progress_percent: float | None = None,
        context: AcquisitionContext | None = None,
    ) -> ReadingSession:
        """
        Heartbeat a session and log reading_session_heartbeat.

        Raises:
            UnknownSessionError
        """
        session = self._sessions.heartbeat(session_token, progress_percent, context)
        self._log_article_event(
            "reading_session_heartbeat",
            session.article_id,
            session.reader,
            session_token=session.session_token,
            metadata={"progress_percent": session.progress_percent},
        )
        return session

    def complete_reading_session(self, session_token: str) -> CompletionResult:
        """
        Complete a session. The completed event is logged once.

        Raises:
            UnknownSessionError
        """
        result = self._sessions.complete(session_token)
        if result.newly_completed:
            session = result.session
            self._log_article_event(
                "reading_session_completed",
                session.article_id,
                session.reader,
                session_token=session.session_token,
                metadata={
                    "progress_percent": session.progress_percent,
                    "duration_seconds": session.duration_seconds,
                },
            )
        return result

    # --- Views ---

    def record_article_view(
        self,
        article_id: str,
        reader: Reader,
        session_token: str | None = None,
        context: AcquisitionContext | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ViewResult:
        """
        Record an article view.

        Writes the article_view event and bumps the external counter. With a
        session token, heartbeats the existing session or starts a new one.
        """
        view_metadata: dict[str, Any] = dict(metadata or {})
        if context is not None:
            view_metadata.update(context.as_metadata())

        event = self._log_article_event(
            "article_view",
            article_id,
            reader,
            session_token=session_token or None,
            metadata=view_metadata,
        )

        if self._articles is not None:
            try:
                self._articles.increment_view_counter(article_id)
            except Exception:
                logger.exception("View counter increment failed for article %s", article_id)

        if not session_token:
            return ViewResult(event=event)

        try:
            existing = self._sessions.get_session(session_token)
            if existing is not None:
                session = self.heartbeat(session_token, context=context)
                return ViewResult(event=event, session=session)
            session = self.start_reading_session(session_token, article_id, reader, context)
            return ViewResult(event=event, session=session, session_started=True)
        except TrackingError as e:
            logger.warning("View recorded but session %s not updated: %s", session_token, e)
            return ViewResult(event=event, session_error=e)

    # --- Shares ---

    def record_share_event(
        self,
        article_id: str,
        channel: str,
        reader: Reader,
        context: str | None = None,
        metadata_json: str | None = None,
        session_token: str | None = None,
    ) -> ShareResult:
        """
        Record a share and mirror it into the article event log.

        The session is looked up but never created; an unknown token records
        the share unattached.
        """
        attached: str | None = None
        if session_token:
            session = self._sessions.get_session(session_token)
            if session is None:
                logger.warning(
                    "Share for unknown session %s recorded unattached",
                    session_token,
                    extra={"error_code": UnknownSessionError.code},
                )
            else:
                attached = session.session_token

        metadata = build_share_metadata(channel, context, metadata_json, self._limits)
        now = self._now()
        event = ShareEvent(
            article_id=article_id,
            channel=channel,
            event_timestamp=now,
            session_token=attached,
            context=context,
            metadata=metadata,
            **reader_fields(reader),
        )
        self._events.append_share_event(event)
        self._events.append_article_event(
            ArticleEvent(
                article_id=article_id,
                event_type="share",
                event_timestamp=now,
                session_token=attached,
                metadata=metadata,
                **reader_fields(reader),
            )
        )
        return ShareResult(event=event, attached_session_token=attached)

    # --- Generic engagement ---

    def record_engagement_event(
        self,
        event_type: str,
        article_id: str | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
        duration_ms: int | None = None,
        metadata: Mapping[str, Any] | str | None = None,
        occurred_at: datetime | None = None,
    ) -> EngagementEvent:
        """
        Record a generic engagement event.

        Metadata may be a mapping or an already-serialized JSON object.
        Metadata that is unserializable or out of bounds is omitted; the
        event is still recorded. occurred_at is normalized to UTC.
        """
        if isinstance(metadata, str):
            encoded = parse_engagement_metadata(metadata, self._limits)
        else:
            encoded = safe_serialize(metadata, self._limits)

        event = EngagementEvent(
            event_type=event_type,
            occurred_at=to_utc(occurred_at) if occurred_at else self._now(),
            article_id=article_id,
            user_id=user_id,
            session_id=session_id,
            metadata=encoded,
            duration_ms=duration_ms,
        )
        self._events.append_engagement_event(event)
        return event
