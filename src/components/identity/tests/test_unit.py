"""
Unit tests for Identity component.
"""

from __future__ import annotations

import re
import uuid

from src.core.errors import StorageUnavailableError

from .._impl import InMemoryVisitorStorage, fallback_visitor_id, generate_visitor_id
from ..component import (
    VISITOR_ID_STORAGE_KEY,
    IdentityContext,
    ensure_visitor_id,
    resolve_visitor_id,
)

# --- Test Fixtures ---


class UnavailableStorage:
    """Storage that is completely unusable."""

    def get(self, key: str) -> str | None:
        raise StorageUnavailableError("storage disabled")

    def set(self, key: str, value: str) -> None:
        raise StorageUnavailableError("storage disabled")


class ReadOnlyStorage(InMemoryVisitorStorage):
    """Storage that reads but refuses writes (quota exceeded)."""

    def set(self, key: str, value: str) -> None:
        raise StorageUnavailableError("quota exceeded")


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def no_uuid() -> uuid.UUID:
    raise NotImplementedError("no secure random source")


# --- Tests ---


class TestGenerateVisitorId:
    """Id generation."""

    def test_prefers_uuid(self) -> None:
        value = generate_visitor_id()
        assert uuid.UUID(value)

    def test_fallback_format(self) -> None:
        value = generate_visitor_id(uuid_factory=no_uuid, clock=lambda: 1700000000.5)
        assert re.fullmatch(r"anon_1700000000500_[0-9a-z]{8}", value)

    def test_fallback_ids_differ(self) -> None:
        assert fallback_visitor_id() != fallback_visitor_id()


class TestEnsureVisitorId:
    """Durable id."""

    def test_idempotent(self) -> None:
        storage = InMemoryVisitorStorage()
        first = ensure_visitor_id(storage)
        assert ensure_visitor_id(storage) == first
        assert storage.get(VISITOR_ID_STORAGE_KEY) == first

    def test_returns_existing(self) -> None:
        storage = InMemoryVisitorStorage({VISITOR_ID_STORAGE_KEY: "existing"})
        assert ensure_visitor_id(storage) == "existing"

    def test_degrades_when_unavailable(self) -> None:
        result = resolve_visitor_id(UnavailableStorage(), generate=lambda: "page-only")
        assert result.visitor_id == "page-only"
        assert result.persisted is False

    def test_degrades_when_write_fails(self) -> None:
        result = resolve_visitor_id(ReadOnlyStorage(), generate=lambda: "page-only")
        assert result.persisted is False


class TestIdentityContext:
    """Per-load identity context."""

    def test_create(self) -> None:
        ids = iter(["visitor", "page-session"])
        clock = FakeClock(50.0)

        ctx = IdentityContext.create(
            InMemoryVisitorStorage(), generate=lambda: next(ids), clock=clock
        )

        assert ctx.visitor_id == "visitor"
        assert ctx.page_session_id == "page-session"
        assert ctx.persisted is True
        assert ctx.loaded_at == 50.0

    def test_visitor_stable_page_session_fresh(self) -> None:
        storage = InMemoryVisitorStorage()
        first = IdentityContext.create(storage)
        second = IdentityContext.create(storage)

        assert first.visitor_id == second.visitor_id
        assert first.page_session_id != second.page_session_id

    def test_elapsed_ms(self) -> None:
        clock = FakeClock(10.0)
        ctx = IdentityContext.create(InMemoryVisitorStorage(), clock=clock)
        clock.now = 12.5
        assert ctx.elapsed_ms() == 2500

    def test_degraded_context(self) -> None:
        ctx = IdentityContext.create(UnavailableStorage())
        assert ctx.persisted is False
        assert ctx.visitor_id
