"""
Emitter component models.

Payloads mirror the server-side record operations field for field so any
transport (in-process, HTTP) can forward them unchanged.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class EngagementPayload:
    """Payload for RecordEngagementEvent."""

    event_type: str
    article_id: str | None = None
    user_id: str | None = None  # visitor id of the emitting client
    session_id: str | None = None  # page session id
    duration_ms: int | None = None
    metadata: str | None = None  # serialized JSON

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SharePayload:
    """Payload for RecordShareEvent."""

    article_id: str
    channel: str
    reader_type: str = "guest"
    visitor_key: str | None = None
    user_id: str | None = None
    context: str | None = None
    metadata_json: str | None = None
    session_token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one fire-and-forget submission.

    Callers may discard it; it exists for tests and diagnostics.
    """

    delivered: bool
    error: str | None = None
    skipped: bool = False  # True when the call was a logged no-op


SKIPPED = DispatchResult(delivered=False, skipped=True)
