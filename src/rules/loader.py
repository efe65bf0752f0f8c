from pathlib import Path

import yaml
from pydantic import ValidationError

from src.components.aggregation import AggregationConfig
from src.components.confidence import ConfidencePolicy
from src.components.sessions import CompletionPolicy
from src.core.services.metadata import MetadataLimits
from src.rules.models import Rules


def _strip_code_fence(content: str) -> str:
    """Return the first ```yaml block, or the whole text if there is none."""
    yaml_lines = []
    in_block = False
    found_block = False

    for line in content.splitlines():
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(_strip_code_fence(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e


# --- Rules -> component configuration ---


def metadata_limits(rules: Rules) -> MetadataLimits:
    m = rules.tracking.metadata
    return MetadataLimits(
        max_keys=m.max_keys,
        max_key_length=m.max_key_length,
        max_string_length=m.max_string_length,
    )


def completion_policy(rules: Rules) -> CompletionPolicy:
    return CompletionPolicy(
        min_progress_percent=rules.sessions.completion_min_progress_percent,
        min_duration_seconds=rules.sessions.completion_min_duration_seconds,
    )


def confidence_policy(rules: Rules) -> ConfidencePolicy:
    c = rules.confidence
    return ConfidencePolicy(
        min_sessions=c.min_sessions,
        min_timed_sessions=c.min_timed_sessions,
        min_shares=c.min_shares,
    )


def aggregation_config(rules: Rules) -> AggregationConfig:
    a = rules.aggregation
    return AggregationConfig(
        default_window_days=a.default_window_days,
        max_window_days=a.max_window_days,
        top_articles_limit=a.top_articles_limit,
        channel_limit=a.channel_limit,
        completion=completion_policy(rules),
        confidence=confidence_policy(rules),
    )
