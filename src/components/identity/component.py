"""
Identity component - Durable visitor id and per-load session id.

Key behaviors:
- ensure_visitor_id returns the stored id or generates and persists one;
  repeated calls against the same storage return the same id
- When storage is unavailable a fresh, non-persisted id is returned
  (degraded mode) instead of failing
- IdentityContext is created once per client process/page load and passed
  explicitly to the tracker; it has no teardown
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from src.core.errors import StorageUnavailableError

from ._impl import generate_visitor_id
from .ports import VisitorStoragePort

logger = logging.getLogger(__name__)

VISITOR_ID_STORAGE_KEY = "reading_analytics_visitor_id"


@dataclass(frozen=True)
class VisitorIdResult:
    visitor_id: str
    persisted: bool


def resolve_visitor_id(
    storage: VisitorStoragePort,
    generate: Callable[[], str] = generate_visitor_id,
    key: str = VISITOR_ID_STORAGE_KEY,
) -> VisitorIdResult:
    """Load or create the visitor id, reporting whether it is persisted."""
    try:
        existing = storage.get(key)
        if existing:
            return VisitorIdResult(visitor_id=existing, persisted=True)
        visitor_id = generate()
        storage.set(key, visitor_id)
        return VisitorIdResult(visitor_id=visitor_id, persisted=True)
    except StorageUnavailableError as e:
        logger.warning("Visitor storage unavailable, using a page-scoped id: %s", e)
        return VisitorIdResult(visitor_id=generate(), persisted=False)


def ensure_visitor_id(
    storage: VisitorStoragePort,
    generate: Callable[[], str] = generate_visitor_id,
) -> str:
    """Return the durable visitor id, creating it on first use."""
    return resolve_visitor_id(storage, generate).visitor_id


@dataclass(frozen=True)
class IdentityContext:
    """Identity for one client process / page load."""

    visitor_id: str
    page_session_id: str
    loaded_at: float  # monotonic seconds
    persisted: bool = True
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        storage: VisitorStoragePort,
        generate: Callable[[], str] = generate_visitor_id,
        clock: Callable[[], float] = time.monotonic,
    ) -> IdentityContext:
        result = resolve_visitor_id(storage, generate)
        return cls(
            visitor_id=result.visitor_id,
            page_session_id=generate(),
            loaded_at=clock(),
            persisted=result.persisted,
            clock=clock,
        )

    def elapsed_ms(self) -> int:
        """Milliseconds since this context was created."""
        return max(0, int((self.clock() - self.loaded_at) * 1000))
