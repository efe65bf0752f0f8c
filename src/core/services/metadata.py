"""
Event metadata serialization.

Metadata is a bounded key-value map of primitive values, stored as a JSON
string. Well-known keys are declared per article event type; the mapping is
non-exhaustive, so unknown keys are accepted.

Key behaviors:
- encode_metadata raises SerializationError on anything it cannot store
- safe_serialize degrades to None (metadata omitted) instead of raising
- decode_metadata never raises; malformed JSON decodes to {}
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.core.errors import SerializationError

logger = logging.getLogger(__name__)

MetadataValue = str | int | float | bool | None
Metadata = Mapping[str, MetadataValue]

PRIMITIVE_TYPES = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class MetadataLimits:
    """Bounds applied to metadata maps."""

    max_keys: int = 32
    max_key_length: int = 64
    max_string_length: int = 1024


DEFAULT_LIMITS = MetadataLimits()

WELL_KNOWN_METADATA_KEYS: dict[str, frozenset[str]] = {
    "article_view": frozenset(
        {"source", "referrer", "utm_source", "utm_medium", "utm_campaign", "device_type"}
    ),
    "reading_session_started": frozenset(
        {"referrer", "utm_source", "utm_medium", "utm_campaign", "device_type"}
    ),
    "reading_session_heartbeat": frozenset({"source", "progress_percent"}),
    "reading_session_completed": frozenset({"progress_percent", "duration_seconds"}),
    "share": frozenset({"channel", "context", "extra", "surface", "action"}),
    "custom": frozenset(),
}


def validate_metadata(
    metadata: Mapping[str, Any],
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> None:
    """Raise SerializationError if metadata violates the bounds."""
    if not isinstance(metadata, Mapping):
        raise SerializationError(f"Metadata must be a mapping, got {type(metadata).__name__}")

    if len(metadata) > limits.max_keys:
        raise SerializationError(f"Metadata has too many keys (max {limits.max_keys})")

    for key, value in metadata.items():
        if not isinstance(key, str) or not key:
            raise SerializationError("Metadata keys must be non-empty strings")
        if len(key) > limits.max_key_length:
            raise SerializationError(f"Metadata key too long: {key[:16]}...")
        if not isinstance(value, PRIMITIVE_TYPES):
            raise SerializationError(
                f"Metadata value for '{key}' is not a primitive ({type(value).__name__})"
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise SerializationError(f"Metadata value for '{key}' is not finite")
        if isinstance(value, str) and len(value) > limits.max_string_length:
            raise SerializationError(f"Metadata value for '{key}' is too long")


def encode_metadata(
    metadata: Mapping[str, Any] | None,
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> str | None:
    """
    Serialize metadata to a JSON string.

    Empty or missing metadata encodes to None. None-valued entries are dropped.

    Raises:
        SerializationError: if metadata is not a bounded map of primitives
    """
    if metadata is None:
        return None

    validate_metadata(metadata, limits)

    cleaned = {k: v for k, v in metadata.items() if v is not None}
    if not cleaned:
        return None

    try:
        return json.dumps(cleaned, sort_keys=True, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Metadata could not be serialized: {e}") from e


def safe_serialize(
    metadata: Mapping[str, Any] | None,
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> str | None:
    """Serialize metadata, omitting it (and logging) on failure."""
    try:
        return encode_metadata(metadata, limits)
    except SerializationError as e:
        logger.warning("Dropping event metadata: %s", e)
        return None


def decode_metadata(raw: str | None) -> dict[str, Any]:
    """Decode stored metadata."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


def unknown_keys(event_type: str, metadata: Mapping[str, Any]) -> set[str]:
    """Keys not declared as well-known for this event type."""
    known = WELL_KNOWN_METADATA_KEYS.get(event_type, frozenset())
    extra = set(metadata) - known
    if extra:
        logger.debug("Event %s carries non-standard metadata keys: %s", event_type, sorted(extra))
    return extra
