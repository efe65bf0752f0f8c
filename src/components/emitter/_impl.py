"""
Emitter dispatchers and the in-process transport.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from src.core.entities import reader_from_payload

from .models import DispatchResult, EngagementPayload, SharePayload

if TYPE_CHECKING:
    from src.components.events import TrackingService

logger = logging.getLogger(__name__)


def completed_future(result: DispatchResult) -> Future[DispatchResult]:
    future: Future[DispatchResult] = Future()
    future.set_result(result)
    return future


class InlineDispatcher:
    """Runs work synchronously. Deterministic; used by tests and the CLI."""

    def submit(self, work: Callable[[], DispatchResult]) -> Future[DispatchResult]:
        return completed_future(work())

    def shutdown(self, wait: bool = True) -> None:
        pass


class ThreadPoolDispatcher:
    """Runs work on a background thread pool."""

    def __init__(self, max_workers: int = 2, thread_name_prefix: str = "tracking") -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )

    def submit(self, work: Callable[[], DispatchResult]) -> Future[DispatchResult]:
        try:
            return self._executor.submit(work)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning("Tracking dispatcher unavailable: %s", e)
            return completed_future(DispatchResult(delivered=False, error=str(e)))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class InProcessTransport:
    """Delivers payloads directly to a TrackingService in the same process."""

    def __init__(self, tracking_service: TrackingService) -> None:
        self._service = tracking_service

    def send_engagement(self, payload: EngagementPayload) -> None:
        self._service.record_engagement_event(
            payload.event_type,
            article_id=payload.article_id,
            user_id=payload.user_id,
            session_id=payload.session_id,
            duration_ms=payload.duration_ms,
            metadata=payload.metadata,
        )

    def send_share(self, payload: SharePayload) -> None:
        reader = reader_from_payload(payload.reader_type, payload.user_id, payload.visitor_key)
        self._service.record_share_event(
            payload.article_id,
            payload.channel,
            reader,
            context=payload.context,
            metadata_json=payload.metadata_json,
            session_token=payload.session_token,
        )

    def close(self) -> None:
        pass
