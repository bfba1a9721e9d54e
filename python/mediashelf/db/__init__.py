"""Database module for mediashelf.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from mediashelf.db.engine import create_db_engine, get_engine, init_schema
from mediashelf.db.models import (
    Base,
    Collection,
    CollectionMedia,
    CollectionMembership,
    CollectionRole,
    CollectionTag,
    Media,
    MediaPlatform,
    MediaTag,
    MediaType,
    User,
    Visibility,
)
from mediashelf.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "init_schema",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "MediaType",
    "Visibility",
    "CollectionRole",
    # Models
    "User",
    "Media",
    "MediaTag",
    "MediaPlatform",
    "Collection",
    "CollectionTag",
    "CollectionMedia",
    "CollectionMembership",
]
