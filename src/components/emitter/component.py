"""
Emitter component - Fire-and-forget client tracking API.

Key behaviors:
- track_event / track_share never raise and never block the caller
- metadata is serialized defensively; on failure it is omitted
- a share without a resolvable article id is a logged no-op
- delivery failures are caught inside the dispatched work, logged and
  reported through DispatchResult; nothing is retried
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from typing import Any

from src.components.identity import IdentityContext
from src.core.services.metadata import DEFAULT_LIMITS, MetadataLimits, safe_serialize

from ._impl import InlineDispatcher, completed_future
from .models import SKIPPED, DispatchResult, EngagementPayload, SharePayload
from .ports import DispatcherPort, TrackingTransportPort

logger = logging.getLogger(__name__)


class OneShotGuard:
    """
    Emit once per false -> true edge of a condition.

    For telemetry about derived UI states ("nothing to show", "error") that
    would otherwise be re-emitted on every render.
    """

    def __init__(self) -> None:
        self._armed = True

    def should_emit(self, condition: bool) -> bool:
        if not condition:
            self._armed = True
            return False
        if self._armed:
            self._armed = False
            return True
        return False

    def reset(self) -> None:
        self._armed = True


class EngagementTracker:
    """Client-side tracker bound to one IdentityContext."""

    def __init__(
        self,
        identity: IdentityContext,
        transport: TrackingTransportPort,
        dispatcher: DispatcherPort | None = None,
        default_article_id: str | None = None,
        limits: MetadataLimits = DEFAULT_LIMITS,
    ) -> None:
        self._identity = identity
        self._transport = transport
        self._dispatcher = dispatcher or InlineDispatcher()
        self._default_article_id = default_article_id
        self._limits = limits

    @property
    def identity(self) -> IdentityContext:
        return self._identity

    def close(self, wait: bool = True) -> None:
        """Stop the dispatcher, then release the transport. The tracker owns both."""
        self._dispatcher.shutdown(wait=wait)
        self._transport.close()

    def _dispatch(self, description: str, send: Callable[[], None]) -> Future[DispatchResult]:
        def work() -> DispatchResult:
            try:
                send()
            except Exception as e:
                logger.warning("Tracking %s failed: %s", description, e)
                return DispatchResult(delivered=False, error=str(e))
            return DispatchResult(delivered=True)

        try:
            return self._dispatcher.submit(work)
        except Exception as e:
            logger.exception("Tracking dispatch failed for %s", description)
            return completed_future(DispatchResult(delivered=False, error=str(e)))

    def track_event(
        self,
        event_type: str,
        article_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> Future[DispatchResult]:
        """Report a generic engagement event."""
        if not event_type:
            logger.warning("track_event called without an event type; ignored")
            return completed_future(SKIPPED)

        payload = EngagementPayload(
            event_type=event_type,
            article_id=article_id or self._default_article_id,
            user_id=self._identity.visitor_id,
            session_id=self._identity.page_session_id,
            duration_ms=duration_ms if duration_ms is not None else self._identity.elapsed_ms(),
            metadata=safe_serialize(metadata, self._limits),
        )
        return self._dispatch(
            f"event {event_type}", lambda: self._transport.send_engagement(payload)
        )

    def track_share(
        self,
        channel: str,
        surface: str | None = None,
        action: str | None = None,
        article_id: str | None = None,
    ) -> Future[DispatchResult]:
        """Report a share; a no-op when no article id can be resolved."""
        resolved = article_id or self._default_article_id
        if not resolved:
            logger.warning("track_share(%s) without an article id; ignored", channel)
            return completed_future(SKIPPED)

        payload = SharePayload(
            article_id=resolved,
            channel=channel,
            reader_type="guest",
            visitor_key=self._identity.visitor_id,
            context=surface,
            metadata_json=safe_serialize(
                {"channel": channel, "surface": surface, "action": action}, self._limits
            ),
        )
        return self._dispatch(f"share {channel}", lambda: self._transport.send_share(payload))
