"""Viewer endpoints: own profile and pending invitations."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mediashelf.api.deps import get_db
from mediashelf.auth.middleware import ViewerDep
from mediashelf.responses import success_response
from mediashelf.schemas.collection import RespondInvitationRequest
from mediashelf.schemas.user import UpdateMeRequest
from mediashelf.services import invitations as invitations_service
from mediashelf.services import users as users_service

router = APIRouter()


@router.get("/me")
def get_me(viewer: ViewerDep, db: Annotated[Session, Depends(get_db)]) -> dict:
    """Get the viewer's profile and default collection id (null until first used)."""
    result = users_service.get_me(db, viewer.user_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/me")
def update_me(
    request: UpdateMeRequest, viewer: ViewerDep, db: Annotated[Session, Depends(get_db)]
) -> dict:
    """Update the viewer's name and/or username."""
    result = users_service.update_me(db, viewer.user_id, request.changes())
    return success_response(result.model_dump(mode="json"))


@router.get("/me/invitations")
def list_my_invitations(viewer: ViewerDep, db: Annotated[Session, Depends(get_db)]) -> dict:
    """List pending invitations addressed to the viewer, newest first."""
    result = invitations_service.list_viewer_invitations(db, viewer.user_id)
    return success_response([row.model_dump(mode="json") for row in result])


@router.post("/me/invitations/{collection_id}/respond")
def respond_to_invitation(
    collection_id: str,
    request: RespondInvitationRequest,
    viewer: ViewerDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Accept or reject an invitation.

    Returns the accepted membership, or null data when the invitation was rejected.
    """
    result = invitations_service.respond_to_invitation(
        db, viewer.user_id, collection_id, request.accept
    )
    return success_response(result.model_dump(mode="json") if result else None)
