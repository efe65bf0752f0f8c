"""
Tracking Ingestion API Routes.

Public endpoints for engagement, share, view and reading session events.

Session errors map to HTTP statuses:
- DuplicateSessionError -> 409
- UnknownSessionError -> 404
- InvalidReaderError / InvalidSessionTokenError -> 400
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.api.deps import get_tracking_service
from src.components.events import TrackingService
from src.core.entities import AcquisitionContext, Reader, ReadingSession, reader_from_payload
from src.core.errors import (
    DuplicateSessionError,
    InvalidReaderError,
    InvalidSessionTokenError,
    TrackingError,
    UnknownSessionError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class ReaderFields(BaseModel):
    """Reader identity carried by every reader-scoped request."""

    reader_type: str | None = Field(None, description="guest or registered")
    user_id: str | None = None
    visitor_key: str | None = None


class ContextFields(BaseModel):
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    device_type: str | None = None


class EngagementRequest(BaseModel):
    event_type: str = Field(..., min_length=1)
    article_id: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    duration_ms: int | None = Field(None, ge=0)
    metadata: dict[str, Any] | str | None = None
    occurred_at: datetime | None = None


class ShareRequest(ReaderFields):
    article_id: str = Field(..., min_length=1)
    channel: str = Field(..., min_length=1)
    context: str | None = None
    metadata_json: str | None = None
    session_token: str | None = None


class ViewRequest(ReaderFields, ContextFields):
    article_id: str = Field(..., min_length=1)
    session_token: str | None = None


class StartSessionRequest(ReaderFields, ContextFields):
    session_token: str = Field(..., min_length=1)
    article_id: str = Field(..., min_length=1)


class HeartbeatRequest(ContextFields):
    progress_percent: float | None = Field(None, allow_inf_nan=False)


class OkResponse(BaseModel):
    ok: bool = True


class SessionResponse(BaseModel):
    session_token: str
    article_id: str
    reader_type: str
    started_at: datetime
    last_event_at: datetime
    completed_at: datetime | None
    duration_seconds: float | None
    progress_percent: float | None


class CompleteResponse(BaseModel):
    session: SessionResponse
    newly_completed: bool


class ShareResponse(BaseModel):
    ok: bool = True
    attached_session_token: str | None


class ViewResponse(BaseModel):
    ok: bool = True
    session: SessionResponse | None = None
    session_started: bool = False
    session_error: str | None = None


# --- Helpers ---


def _reader(body: ReaderFields) -> Reader:
    try:
        return reader_from_payload(body.reader_type, body.user_id, body.visitor_key)
    except InvalidReaderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def _context(body: ContextFields) -> AcquisitionContext:
    return AcquisitionContext(
        referrer=body.referrer,
        utm_source=body.utm_source,
        utm_medium=body.utm_medium,
        utm_campaign=body.utm_campaign,
        device_type=body.device_type,
    )


def _session_response(session: ReadingSession) -> SessionResponse:
    return SessionResponse(
        session_token=session.session_token,
        article_id=session.article_id,
        reader_type=session.reader_type,
        started_at=session.started_at,
        last_event_at=session.last_event_at,
        completed_at=session.completed_at,
        duration_seconds=session.duration_seconds,
        progress_percent=session.progress_percent,
    )


def _http_error(e: TrackingError) -> HTTPException:
    if isinstance(e, DuplicateSessionError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, UnknownSessionError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (InvalidReaderError, InvalidSessionTokenError)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail={"code": e.code, "message": str(e)})


# --- Routes ---


@router.post("/engagement", response_model=OkResponse)
def track_engagement(
    body: EngagementRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> OkResponse:
    """Record a generic engagement event."""
    service.record_engagement_event(
        body.event_type,
        article_id=body.article_id,
        user_id=body.user_id,
        session_id=body.session_id,
        duration_ms=body.duration_ms,
        metadata=body.metadata,
        occurred_at=body.occurred_at,
    )
    return OkResponse()


@router.post("/share", response_model=ShareResponse)
def track_share(
    body: ShareRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> ShareResponse:
    """Record a share. An unknown session token records the share unattached."""
    result = service.record_share_event(
        body.article_id,
        body.channel,
        _reader(body),
        context=body.context,
        metadata_json=body.metadata_json,
        session_token=body.session_token,
    )
    return ShareResponse(attached_session_token=result.attached_session_token)


@router.post("/view", response_model=ViewResponse)
def track_view(
    body: ViewRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> ViewResponse:
    """Record an article view and attach it to a reading session."""
    result = service.record_article_view(
        body.article_id,
        _reader(body),
        session_token=body.session_token,
        context=_context(body),
    )
    return ViewResponse(
        session=_session_response(result.session) if result.session else None,
        session_started=result.session_started,
        session_error=result.session_error.code if result.session_error else None,
    )


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    body: StartSessionRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> SessionResponse:
    reader = _reader(body)
    try:
        session = service.start_reading_session(
            body.session_token, body.article_id, reader, _context(body)
        )
    except TrackingError as e:
        raise _http_error(e) from e
    return _session_response(session)


@router.post("/sessions/{token}/heartbeat", response_model=SessionResponse)
def heartbeat(
    token: str,
    body: HeartbeatRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> SessionResponse:
    try:
        session = service.heartbeat(token, body.progress_percent, _context(body))
    except TrackingError as e:
        raise _http_error(e) from e
    return _session_response(session)


@router.post("/sessions/{token}/complete", response_model=CompleteResponse)
def complete_session(
    token: str,
    service: TrackingService = Depends(get_tracking_service),
) -> CompleteResponse:
    """Complete a session. Repeated calls return the stored completion."""
    try:
        result = service.complete_reading_session(token)
    except TrackingError as e:
        raise _http_error(e) from e
    return CompleteResponse(
        session=_session_response(result.session),
        newly_completed=result.newly_completed,
    )
