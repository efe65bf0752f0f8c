"""
Tracking error taxonomy.

Session errors are raised by the session lifecycle manager and surfaced to
server-side callers. Serialization and storage errors are raised by the low
level helpers and recovered locally by the client-side tracker.
"""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for all reading-analytics errors."""

    code = "tracking_error"


class DuplicateSessionError(TrackingError):
    """A reading session with this token already exists."""

    code = "duplicate_session"

    def __init__(self, session_token: str) -> None:
        super().__init__(f"Reading session already exists: {session_token}")
        self.session_token = session_token


class UnknownSessionError(TrackingError):
    """No reading session exists for this token."""

    code = "unknown_session"

    def __init__(self, session_token: str) -> None:
        super().__init__(f"Reading session not found: {session_token}")
        self.session_token = session_token


class InvalidSessionTokenError(TrackingError):
    """Session token is empty or malformed."""

    code = "invalid_session_token"


class InvalidReaderError(TrackingError, ValueError):
    """Reader payload does not identify a guest or a registered user."""

    code = "invalid_reader"


class SerializationError(TrackingError):
    """Event metadata could not be serialized."""

    code = "serialization_error"


class StorageUnavailableError(TrackingError):
    """Identity or event persistence is unavailable."""

    code = "storage_unavailable"
