"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from mediashelf.api.routes.collections import router as collections_router
from mediashelf.api.routes.health import router as health_router
from mediashelf.api.routes.me import router as me_router
from mediashelf.api.routes.media import router as media_router
from mediashelf.api.routes.users import router as users_router


def create_api_router() -> APIRouter:
    """Create the API router with all routes registered."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["me"])
    api_router.include_router(users_router, tags=["users"])
    api_router.include_router(collections_router, tags=["collections"])
    api_router.include_router(media_router, tags=["media"])
    return api_router


__all__ = ["create_api_router"]
