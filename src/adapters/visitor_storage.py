"""
JSON File Visitor Storage Adapter.

Implements VisitorStoragePort with a small JSON document on disk, playing
the role browser local storage plays for a web client.

Any filesystem or decoding failure is reported as StorageUnavailableError
so the identity provider can fall back to a page-scoped id.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path

from src.core.errors import StorageUnavailableError


class JsonFileVisitorStorage:
    """Key-value storage persisted as a JSON object in one file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StorageUnavailableError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailableError(f"Unexpected content in {self.path}")
        return data

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read().get(key)
            return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(data, sort_keys=True), encoding="utf-8")
                os.replace(tmp_path, self.path)
            except OSError as e:
                raise StorageUnavailableError(f"Cannot write {self.path}: {e}") from e
