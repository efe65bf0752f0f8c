"""
Events component - Event log and server-side tracking facade.
"""

from ._impl import InMemoryArticleDirectory, InMemoryEventStore
from .component import (
    TrackingService,
    build_share_metadata,
    parse_engagement_metadata,
    parse_share_extra,
)
from .models import ShareResult, ViewResult
from .ports import ArticleDirectoryPort, EventStorePort, TimePort

__all__ = [
    # Facade
    "TrackingService",
    # Pure functions
    "build_share_metadata",
    "parse_engagement_metadata",
    "parse_share_extra",
    # Models
    "ShareResult",
    "ViewResult",
    # Ports
    "ArticleDirectoryPort",
    "EventStorePort",
    "TimePort",
    # Implementations
    "InMemoryArticleDirectory",
    "InMemoryEventStore",
]
