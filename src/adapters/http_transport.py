"""
HTTP Tracking Transport.

Implements TrackingTransportPort by POSTing payloads to the tracking API
(/api/track/engagement, /api/track/share) with httpx.

Errors are raised, not swallowed: the emitter's dispatcher catches and
logs them, so the calling UI never sees them.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.components.emitter import EngagementPayload, SharePayload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class HttpTrackingTransport:
    """Sends tracking payloads to a remote tracking API."""

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def _post(self, path: str, body: dict[str, Any]) -> None:
        response = self._client.post(f"{self._base_url}{path}", json=body)
        response.raise_for_status()
        logger.debug("Tracking POST %s -> %s", path, response.status_code)

    def send_engagement(self, payload: EngagementPayload) -> None:
        self._post("/api/track/engagement", payload.to_dict())

    def send_share(self, payload: SharePayload) -> None:
        self._post("/api/track/share", payload.to_dict())

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
