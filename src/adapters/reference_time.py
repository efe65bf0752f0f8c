"""
Reference Timezone Adapter.

Implements TimePort for a configurable IANA timezone (default UTC).
Aggregation windows (today, this week, this month, per-day series) are
computed against this timezone; storage stays in UTC.

Key behaviors:
- now_utc: current UTC time
- timezone_name: IANA name the aggregation calendar is built on
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo


class ReferenceTimeAdapter:
    """Time adapter for the deployment's reference timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        """
        Initialize with specified timezone.

        Args:
            tz_name: IANA timezone name (default: UTC)
        """
        ZoneInfo(tz_name)  # unknown names raise here, not mid-aggregation
        self._tz_name = tz_name
        self._utc = UTC

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        return datetime.now(self._utc)

    @property
    def timezone_name(self) -> str:
        """Get the reference timezone name."""
        return self._tz_name


class FrozenTimeAdapter(ReferenceTimeAdapter):
    """
    Time adapter that returns a fixed time.

    Useful for deterministic testing.
    """

    def __init__(self, frozen_utc: datetime, tz_name: str = "UTC") -> None:
        """
        Initialize with frozen time.

        Args:
            frozen_utc: The UTC time to return from now_utc()
            tz_name: IANA timezone name reported to aggregation
        """
        super().__init__(tz_name)
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._frozen_utc = frozen_utc.astimezone(UTC)

    def now_utc(self) -> datetime:
        """Get frozen UTC time."""
        return self._frozen_utc

    def advance(self, delta: timedelta) -> None:
        """Advance frozen time by delta (for testing)."""
        self._frozen_utc = self._frozen_utc + delta

    def set_now(self, now_utc: datetime) -> None:
        """Move frozen time to an absolute instant."""
        if now_utc.tzinfo is None:
            now_utc = now_utc.replace(tzinfo=UTC)
        self._frozen_utc = now_utc.astimezone(UTC)


def create_time_adapter(tz_name: str = "UTC") -> ReferenceTimeAdapter:
    """Factory function to create a time adapter."""
    return ReferenceTimeAdapter(tz_name)
