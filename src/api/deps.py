import os
from functools import lru_cache
from pathlib import Path

from src.app_shell.context import ServiceContext
from src.components.events import TrackingService
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("ANALYTICS_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "analytics.db")
        self.rules_path = Path(
            os.environ.get("ANALYTICS_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Services ---
@lru_cache
def get_context() -> ServiceContext:
    return ServiceContext.create(get_settings().db_path, get_rules())


def get_tracking_service() -> TrackingService:
    return get_context().tracking
