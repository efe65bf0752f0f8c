"""
Events component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.ports.db import ArticleDirectoryPort, EventStorePort

__all__ = ["ArticleDirectoryPort", "EventStorePort", "TimePort"]


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
