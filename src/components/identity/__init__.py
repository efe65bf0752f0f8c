"""
Identity component - Durable visitor id and per-load session id.
"""

from ._impl import InMemoryVisitorStorage, fallback_visitor_id, generate_visitor_id
from .component import (
    VISITOR_ID_STORAGE_KEY,
    IdentityContext,
    VisitorIdResult,
    ensure_visitor_id,
    resolve_visitor_id,
)
from .ports import VisitorStoragePort

__all__ = [
    "VISITOR_ID_STORAGE_KEY",
    "IdentityContext",
    "VisitorIdResult",
    "ensure_visitor_id",
    "resolve_visitor_id",
    "fallback_visitor_id",
    "generate_visitor_id",
    "InMemoryVisitorStorage",
    "VisitorStoragePort",
]
