"""
Emitter component - Fire-and-forget client tracking API.
"""

from ._impl import InlineDispatcher, InProcessTransport, ThreadPoolDispatcher
from .component import EngagementTracker, OneShotGuard
from .models import SKIPPED, DispatchResult, EngagementPayload, SharePayload
from .ports import DispatcherPort, TrackingTransportPort

__all__ = [
    "EngagementTracker",
    "OneShotGuard",
    "DispatchResult",
    "EngagementPayload",
    "SharePayload",
    "SKIPPED",
    "DispatcherPort",
    "TrackingTransportPort",
    "InlineDispatcher",
    "InProcessTransport",
    "ThreadPoolDispatcher",
]
