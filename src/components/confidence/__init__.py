"""
Confidence component - Sample-size gating for derived statistics.
"""

from .component import (
    gate,
    gate_reading_time,
    gate_sessions,
    gate_shares,
    is_low_confidence,
    share_stats_confident,
)
from .models import ConfidencePolicy, GatedStat

__all__ = [
    "gate",
    "gate_reading_time",
    "gate_sessions",
    "gate_shares",
    "is_low_confidence",
    "share_stats_confident",
    "ConfidencePolicy",
    "GatedStat",
]
