"""Collection routes.

Routes are transport-only:
- Read the viewer from request.state (None for anonymous reads)
- Call exactly one service function
- Return success(...), a list envelope, or raise ApiError

No domain logic or raw DB access in routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from mediashelf.api.deps import ListQueryDep, get_db
from mediashelf.auth.middleware import OptionalViewerDep, ViewerDep
from mediashelf.responses import success_response
from mediashelf.schemas.collection import (
    AddCollectionMediaRequest,
    CreateCollectionRequest,
    InviteMemberRequest,
    UpdateCollectionMediaRequest,
    UpdateCollectionRequest,
    UpdateMemberRequest,
)
from mediashelf.services import collections as collections_service
from mediashelf.services import invitations as invitations_service

router = APIRouter()

DbDep = Annotated[Session, Depends(get_db)]


def _viewer_id(viewer) -> str | None:
    return viewer.user_id if viewer else None


# =============================================================================
# Collections
# =============================================================================


@router.post("/collections", status_code=201)
def create_collection(request: CreateCollectionRequest, viewer: ViewerDep, db: DbDep) -> dict:
    """Create a collection owned by the viewer."""
    result = collections_service.create_collection(
        db,
        viewer.user_id,
        name=request.name,
        description=request.description,
        tags=request.tags,
        visibility=request.visibility,
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/collections")
def list_collections(
    request: Request, query: ListQueryDep, viewer: OptionalViewerDep, db: DbDep
) -> dict:
    """List collections visible to the viewer.

    Filters: tag/tags, q (name or description). Sorts: createdAt, name, updatedAt.
    """
    page = collections_service.list_collections(
        db, _viewer_id(viewer), query, base_path=request.url.path
    )
    return page.to_envelope()


@router.get("/collections/{collection_id}")
def get_collection(collection_id: str, viewer: OptionalViewerDep, db: DbDep) -> dict:
    """Get a collection. Invisible collections are reported as not found."""
    result = collections_service.get_collection(db, _viewer_id(viewer), collection_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/collections/{collection_id}")
def update_collection(
    collection_id: str, request: UpdateCollectionRequest, viewer: ViewerDep, db: DbDep
) -> dict:
    """Update a collection (owner only)."""
    result = collections_service.update_collection(
        db, viewer.user_id, collection_id, request.changes()
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/collections/{collection_id}", status_code=204)
def delete_collection(collection_id: str, viewer: ViewerDep, db: DbDep) -> Response:
    """Delete a collection with its media links and memberships (owner only)."""
    collections_service.delete_collection(db, viewer.user_id, collection_id)
    return Response(status_code=204)


# =============================================================================
# Collection media
# =============================================================================


@router.post("/collections/{collection_id}/media", status_code=201)
def add_collection_media(
    collection_id: str, request: AddCollectionMediaRequest, viewer: ViewerDep, db: DbDep
) -> dict:
    """Add an existing media item to a collection (OWNER or COLLABORATOR)."""
    result = collections_service.add_media_to_collection(
        db, viewer.user_id, collection_id, request.media_id, request.position
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/collections/{collection_id}/media")
def list_collection_media(
    collection_id: str,
    request: Request,
    query: ListQueryDep,
    viewer: OptionalViewerDep,
    db: DbDep,
) -> dict:
    """List the media of a collection. Sorts: position (default, asc), addedAt."""
    page = collections_service.list_collection_media(
        db, _viewer_id(viewer), collection_id, query, base_path=request.url.path
    )
    return page.to_envelope()


@router.patch("/collections/{collection_id}/media/{collection_media_id}")
def update_collection_media(
    collection_id: str,
    collection_media_id: str,
    request: UpdateCollectionMediaRequest,
    viewer: ViewerDep,
    db: DbDep,
) -> dict:
    """Move a media item within a collection."""
    result = collections_service.update_collection_media(
        db, viewer.user_id, collection_id, collection_media_id, request.changes()
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/collections/{collection_id}/media/{collection_media_id}", status_code=204)
def remove_collection_media(
    collection_id: str, collection_media_id: str, viewer: ViewerDep, db: DbDep
) -> Response:
    """Remove a media item from a collection. The media item itself is kept."""
    collections_service.remove_media_from_collection(
        db, viewer.user_id, collection_id, collection_media_id
    )
    return Response(status_code=204)


# =============================================================================
# Members
# =============================================================================


@router.post("/collections/{collection_id}/members", status_code=201)
def invite_member(
    collection_id: str, request: InviteMemberRequest, viewer: ViewerDep, db: DbDep
) -> dict:
    """Invite a user (owner only). The membership stays pending until accepted."""
    result = invitations_service.invite_member(
        db, viewer.user_id, collection_id, request.user_id, request.role
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/collections/{collection_id}/members")
def list_members(collection_id: str, viewer: OptionalViewerDep, db: DbDep) -> dict:
    """List members and pending invitations of a readable collection."""
    result = invitations_service.list_members(db, _viewer_id(viewer), collection_id)
    return success_response([member.model_dump(mode="json") for member in result])


@router.patch("/collections/{collection_id}/members/{member_id}")
def update_member(
    collection_id: str,
    member_id: str,
    request: UpdateMemberRequest,
    viewer: ViewerDep,
    db: DbDep,
) -> dict:
    """Change a member's role or acceptance (owner only)."""
    result = invitations_service.update_member(
        db, viewer.user_id, collection_id, member_id, request.changes()
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/collections/{collection_id}/members/{member_id}", status_code=204)
def remove_member(collection_id: str, member_id: str, viewer: ViewerDep, db: DbDep) -> Response:
    """Remove a member or revoke an invitation (owner only)."""
    invitations_service.remove_member(db, viewer.user_id, collection_id, member_id)
    return Response(status_code=204)
