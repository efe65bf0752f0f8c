"""
Sessions component - Reading session lifecycle.
"""

from ._impl import InMemoryReadingSessionRepo
from .component import (
    ReadingSessionManager,
    clamp_progress,
    compute_duration_seconds,
    is_completion_eligible,
    validate_session_token,
)
from .models import CompletionPolicy, CompletionResult
from .ports import ReadingSessionRepoPort, TimePort

__all__ = [
    # Manager
    "ReadingSessionManager",
    # Pure functions
    "clamp_progress",
    "compute_duration_seconds",
    "is_completion_eligible",
    "validate_session_token",
    # Models
    "CompletionPolicy",
    "CompletionResult",
    # Ports
    "ReadingSessionRepoPort",
    "TimePort",
    # Implementations
    "InMemoryReadingSessionRepo",
]
