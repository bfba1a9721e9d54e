"""Media routes.

Routes are transport-only:
- Read the viewer from request.state (None for anonymous reads)
- Call exactly one service function
- Return success(...), a list envelope, or raise ApiError
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from mediashelf.api.deps import ListQueryDep, get_db
from mediashelf.auth.middleware import OptionalViewerDep, ViewerDep
from mediashelf.responses import success_response
from mediashelf.schemas.media import CreateMediaRequest, UpdateMediaRequest
from mediashelf.services import media as media_service

router = APIRouter()


@router.post("/media", status_code=201)
def create_media(
    request: CreateMediaRequest,
    viewer: ViewerDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a media item inside a collection.

    Without collection_id the item lands in the viewer's "Default" collection.
    """
    result = media_service.create_media(db, viewer.user_id, request)
    return success_response(result.model_dump(mode="json"))


@router.get("/media")
def list_media(
    request: Request,
    query: ListQueryDep,
    viewer: OptionalViewerDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List media reachable through collections the viewer can read.

    Filters: tag/tags, platform/platforms, type, q (title or
    description). Sorts: createdAt, title, releaseDate.
    """
    page = media_service.list_media(
        db, viewer.user_id if viewer else None, query, base_path=request.url.path
    )
    return page.to_envelope()


@router.get("/media/{media_id}")
def get_media(
    media_id: str, viewer: OptionalViewerDep, db: Annotated[Session, Depends(get_db)]
) -> dict:
    """Get a media item. Media outside every readable collection is not found."""
    result = media_service.get_media(db, viewer.user_id if viewer else None, media_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/media/{media_id}")
def update_media(
    media_id: str,
    request: UpdateMediaRequest,
    viewer: ViewerDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update a media item (OWNER or COLLABORATOR of a containing collection)."""
    result = media_service.update_media(db, viewer.user_id, media_id, request.changes())
    return success_response(result.model_dump(mode="json"))


@router.delete("/media/{media_id}", status_code=204)
def delete_media(
    media_id: str, viewer: ViewerDep, db: Annotated[Session, Depends(get_db)]
) -> Response:
    """Delete a media item from every collection."""
    media_service.delete_media(db, viewer.user_id, media_id)
    return Response(status_code=204)
