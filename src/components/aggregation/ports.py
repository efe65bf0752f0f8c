"""
Aggregation component port definitions.

Aggregation only reads: the event log, the session store and the article
collaborator.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import ReadingSession
from src.core.ports.db import ArticleDirectoryPort, EventStorePort
from src.core.ports.time import TimePort

__all__ = ["ArticleDirectoryPort", "EventStorePort", "SessionSourcePort", "TimePort"]


class SessionSourcePort(Protocol):
    """Read side of the session store."""

    def list_started_between(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> list[ReadingSession]:
        """List sessions with start <= started_at (< end when given)."""
        ...
