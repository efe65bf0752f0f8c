"""
Emitter component port definitions.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from typing import Protocol

from .models import DispatchResult, EngagementPayload, SharePayload


class TrackingTransportPort(Protocol):
    """Delivers payloads to the tracking service. May raise on failure."""

    def send_engagement(self, payload: EngagementPayload) -> None:
        ...

    def send_share(self, payload: SharePayload) -> None:
        ...

    def close(self) -> None:
        """Release connections held by the transport."""
        ...


class DispatcherPort(Protocol):
    """Runs delivery work without blocking the caller."""

    def submit(self, work: Callable[[], DispatchResult]) -> Future[DispatchResult]:
        """Schedule work; the callable never raises."""
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with wait, finish what is queued."""
        ...
