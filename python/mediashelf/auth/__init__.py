"""Authentication and authorization module.

This module provides:
- Identity middleware (gateway-asserted viewer on request state)
- Collection access policy (role evaluation)
- Visibility predicates for collections and media
"""

from mediashelf.auth.middleware import (
    IdentityMiddleware,
    Viewer,
    get_optional_viewer,
    get_viewer,
)
from mediashelf.auth.policy import (
    ADMIN_ROLES,
    EDIT_MEDIA_ROLES,
    READ_ROLES,
    AccessSnapshot,
    evaluate,
    require_collection_role,
)

__all__ = [
    "IdentityMiddleware",
    "Viewer",
    "get_viewer",
    "get_optional_viewer",
    "AccessSnapshot",
    "evaluate",
    "require_collection_role",
    "READ_ROLES",
    "EDIT_MEDIA_ROLES",
    "ADMIN_ROLES",
]
