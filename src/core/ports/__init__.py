# reading-analytics-core - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.db import ArticleDirectoryPort, EventStorePort
from src.core.ports.time import TimePort

__all__ = [
    "ArticleDirectoryPort",
    "EventStorePort",
    "TimePort",
]
