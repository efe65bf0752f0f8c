import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.rules.models import Rules

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "ANALYTICS_DATA_DIR"


class ConfigurationError(ValueError):
    """Operational requirements are not met."""


def validate_ops_rules(rules: Rules, data_dir: Path | None = None) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        ConfigurationError listing every problem found
    """
    problems: list[str] = []
    ops = rules.ops

    # 1. Data dir
    if ops.data_dir_required:
        if DATA_DIR_ENV not in os.environ:
            problems.append(f"{DATA_DIR_ENV} must be set")
        elif data_dir is not None and data_dir.exists() and not os.access(data_dir, os.W_OK):
            problems.append(f"Data dir {data_dir} is not writable")

    # 2. Required env
    missing = [name for name in ops.required_env if name not in os.environ]
    if missing:
        problems.append(f"Missing required environment variables: {', '.join(missing)}")

    # 3. Reference timezone
    tz_name = rules.aggregation.reference_timezone
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"Unknown reference timezone: {tz_name}")

    if problems:
        for problem in problems:
            logger.critical(problem)
        raise ConfigurationError("; ".join(problems))

    logger.info("Configuration validated (timezone=%s).", tz_name)
