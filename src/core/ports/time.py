"""
Time/Timezone adapter interface.

All stored timestamps are UTC. Calendar boundaries used by aggregation
(today, this week, this month) are computed in the deployment's reference
timezone (default UTC).
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time provider plus the reference timezone name."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    @property
    def timezone_name(self) -> str:
        """IANA name of the reference timezone."""
        ...
