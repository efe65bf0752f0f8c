import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from src.adapters.reference_time import FrozenTimeAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.context import ServiceContext
from src.rules.loader import load_rules

ROOT = Path(__file__).resolve().parents[1]
FROZEN_NOW = datetime(2026, 3, 15, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def test_data_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture
def db_path(test_data_dir):
    path = os.path.join(test_data_dir, "analytics.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def rules():
    # Load REAL rules from project root
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def frozen_time():
    return FrozenTimeAdapter(FROZEN_NOW)


@pytest.fixture
def test_ctx(db_path, rules, frozen_time):
    """
    Creates a full ServiceContext backed by a migrated temporary SQLite DB
    and a frozen clock.
    """
    return ServiceContext.create(db_path, rules, time=frozen_time)
