"""
SQLite schema migrator.

Applies numbered *.sql files in name order and records each in the
_migrations table. Only the part of a file above its "-- Down" marker runs.
"""

import logging
import os
import sqlite3
from contextlib import closing
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")
DOWN_MARKER = "-- Down"

_BOOKKEEPING_DDL = """
    CREATE TABLE IF NOT EXISTS _migrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        filename TEXT UNIQUE NOT NULL,
        applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
"""


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str = DEFAULT_MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(_BOOKKEEPING_DDL)
        return conn

    @staticmethod
    def _applied(conn: sqlite3.Connection) -> set[str]:
        return {name for (name,) in conn.execute("SELECT filename FROM _migrations")}

    def _list_files(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def pending_migrations(self) -> list[str]:
        """Migration files not yet applied, in apply order."""
        with closing(self._connect()) as conn:
            applied = self._applied(conn)
        return [name for name in self._list_files() if name not in applied]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        Path(self.db_path).resolve().parent.mkdir(parents=True, exist_ok=True)

        applied_now: list[str] = []
        with closing(self._connect()) as conn:
            applied = self._applied(conn)
            for name in self._list_files():
                if name in applied:
                    continue
                logger.info("Applying migration: %s", name)
                self._apply(conn, name)
                applied_now.append(name)

        logger.info("All migrations applied (%d new).", len(applied_now))
        return applied_now

    def _up_script(self, name: str) -> str:
        content = (self.migrations_dir / name).read_text(encoding="utf-8")
        up, _, _ = content.partition(DOWN_MARKER)
        return up

    def _apply(self, conn: sqlite3.Connection, name: str) -> None:
        try:
            conn.executescript(self._up_script(name))
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {name} failed: {e}") from e
