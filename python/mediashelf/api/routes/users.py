"""Public user profile routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from mediashelf.api.deps import ListQueryDep, get_db
from mediashelf.responses import success_response
from mediashelf.services import users as users_service

router = APIRouter()


@router.get("/users/{user_id}")
def get_user(user_id: str, db: Annotated[Session, Depends(get_db)]) -> dict:
    """Get a user's public profile."""
    result = users_service.get_user(db, user_id)
    return success_response(result.model_dump(mode="json"))


@router.get("/users/{user_id}/collections")
def list_user_collections(
    user_id: str,
    request: Request,
    query: ListQueryDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List a user's PUBLIC collections. Private and shared ones never appear here."""
    page = users_service.list_public_collections(db, user_id, query, request.url.path)
    return page.to_envelope()
