"""
Identity implementations: id generation and in-memory storage.
"""

from __future__ import annotations

import random
import threading
import time
import uuid
from collections.abc import Callable

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def fallback_visitor_id(clock: Callable[[], float] = time.time) -> str:
    """Time + random composite id, used when no secure UUID source exists."""
    suffix = "".join(random.choices(BASE36_ALPHABET, k=8))
    return f"anon_{int(clock() * 1000)}_{suffix}"


def generate_visitor_id(
    uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    clock: Callable[[], float] = time.time,
) -> str:
    """Random UUID string, or the composite fallback if UUIDs are unavailable."""
    try:
        return str(uuid_factory())
    except (NotImplementedError, OSError):
        return fallback_visitor_id(clock)


class InMemoryVisitorStorage:
    """Process-scoped storage. Used by tests and ephemeral clients."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
