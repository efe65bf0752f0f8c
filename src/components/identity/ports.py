"""
Identity component port definitions.
"""

from __future__ import annotations

from typing import Protocol


class VisitorStoragePort(Protocol):
    """
    Client-side key-value storage (the role browser local storage plays).

    Both methods raise StorageUnavailableError when storage cannot be used.
    """

    def get(self, key: str) -> str | None:
        """Read a stored value, None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Persist a value."""
        ...
