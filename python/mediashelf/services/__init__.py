"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and orchestrate database operations.
"""

from mediashelf.services.collections import get_collection, list_collections
from mediashelf.services.media import get_media, list_media
from mediashelf.services.users import ensure_user

__all__ = [
    "ensure_user",
    "get_collection",
    "list_collections",
    "get_media",
    "list_media",
]
