"""Collection membership and invitation lifecycle.

A membership row is an invitation until the invitee accepts it:

    (none) --invite--> Invited(accepted=false) --accept--> Accepted
                              |                              |
                              +--reject / remove--> (row deleted) <--remove--+

Rules:
- Only the owner invites, changes roles, flips acceptance or removes members,
  regardless of the row's acceptance state
- Only the invitee responds; responding to an accepted row is a conflict
- Rejecting deletes the row, so the user can be invited again
- (collection, user) is unique in storage; the pre-check only exists to
  return a clean conflict, the constraint settles races
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from mediashelf.auth.policy import ADMIN_ROLES, require_collection_role
from mediashelf.auth.visibility import can_read_collection
from mediashelf.db.models import CollectionMembership, CollectionRole, User
from mediashelf.db.session import transaction
from mediashelf.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    reclassify_storage_errors,
)
from mediashelf.logging import get_logger
from mediashelf.schemas.collection import InvitationOut, MemberOut

logger = get_logger(__name__)


def _membership_for(db: Session, collection_id: str, user_id: str) -> CollectionMembership | None:
    return db.execute(
        select(CollectionMembership).where(
            CollectionMembership.collection_id == collection_id,
            CollectionMembership.user_id == user_id,
        )
    ).scalar_one_or_none()


def _member_in_collection(
    db: Session, collection_id: str, member_id: str
) -> CollectionMembership:
    member = db.get(CollectionMembership, member_id)
    if member is None or member.collection_id != collection_id:
        raise NotFoundError(ApiErrorCode.E_MEMBER_NOT_FOUND, "Member not found")
    return member


@reclassify_storage_errors
def invite_member(
    db: Session,
    viewer_id: str,
    collection_id: str,
    user_id: str,
    role: CollectionRole = CollectionRole.READER,
) -> MemberOut:
    """Invite a user to a collection (owner only).

    Returns:
        The new, unaccepted membership.

    Raises:
        NotFoundError: If the collection or the invitee does not exist.
        ForbiddenError: If the viewer is not the owner.
        ConflictError: If the user already has a row (pending or accepted) or owns the collection.
    """
    with transaction(db):
        snapshot = require_collection_role(db, collection_id, viewer_id, ADMIN_ROLES)

        if db.get(User, user_id) is None:
            raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

        if user_id == snapshot.owner_id:
            raise ConflictError(
                ApiErrorCode.E_MEMBER_ALREADY_EXISTS, "User already owns this collection"
            )

        if _membership_for(db, collection_id, user_id) is not None:
            raise ConflictError(
                ApiErrorCode.E_MEMBER_ALREADY_EXISTS, "User is already a member or invited"
            )

        member = CollectionMembership(
            collection_id=collection_id,
            user_id=user_id,
            role=role,
            accepted=False,
        )
        try:
            with db.begin_nested():
                db.add(member)
        except IntegrityError:
            raise ConflictError(
                ApiErrorCode.E_MEMBER_ALREADY_EXISTS, "User is already a member or invited"
            ) from None

    logger.info(
        "member_invited",
        collection_id=collection_id,
        invitee_id=user_id,
        role=role.value,
    )
    return MemberOut.model_validate(member)


@reclassify_storage_errors
def respond_to_invitation(
    db: Session, viewer_id: str, collection_id: str, accept: bool
) -> MemberOut | None:
    """Accept or reject the viewer's invitation to a collection.

    Returns:
        The accepted membership, or None when the invitation was rejected.

    Raises:
        NotFoundError: If the viewer has no row on the collection.
        ConflictError: If the row is already accepted.
    """
    with transaction(db):
        member = _membership_for(db, collection_id, viewer_id)
        if member is None:
            raise NotFoundError(ApiErrorCode.E_INVITATION_NOT_FOUND, "Invitation not found")

        if member.accepted:
            raise ConflictError(
                ApiErrorCode.E_INVITATION_ALREADY_ACCEPTED, "Invitation already accepted"
            )

        if not accept:
            db.delete(member)
            logger.info("invitation_rejected", collection_id=collection_id)
            return None

        member.accepted = True

    logger.info("invitation_accepted", collection_id=collection_id, role=member.role.value)
    return MemberOut.model_validate(member)


@reclassify_storage_errors
def update_member(
    db: Session,
    viewer_id: str,
    collection_id: str,
    member_id: str,
    changes: dict,
) -> MemberOut:
    """Change a member's role and/or acceptance (owner only).

    Raises:
        InvalidRequestError: If no change is given.
        NotFoundError: If the collection or member does not exist.
        ForbiddenError: If the viewer is not the owner.
    """
    if not changes:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_UPDATE, "No fields to update")

    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, ADMIN_ROLES)
        member = _member_in_collection(db, collection_id, member_id)
        if "role" in changes:
            member.role = changes["role"]
        if "accepted" in changes:
            member.accepted = changes["accepted"]

    logger.info(
        "member_updated",
        collection_id=collection_id,
        member_id=member_id,
        fields=sorted(changes),
    )
    return MemberOut.model_validate(member)


@reclassify_storage_errors
def remove_member(db: Session, viewer_id: str, collection_id: str, member_id: str) -> None:
    """Remove a member or revoke a pending invitation (owner only).

    Raises:
        NotFoundError: If the collection or member does not exist.
        ForbiddenError: If the viewer is not the owner.
    """
    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, ADMIN_ROLES)
        member = _member_in_collection(db, collection_id, member_id)
        db.delete(member)

    logger.info("member_removed", collection_id=collection_id, member_id=member_id)


@reclassify_storage_errors
def list_members(db: Session, viewer_id: str | None, collection_id: str) -> list[MemberOut]:
    """List all membership rows of a readable collection.

    Returns rows ordered by invited_at ASC, id ASC.

    Raises:
        NotFoundError: If the collection does not exist or is not visible.
    """
    if not can_read_collection(db, viewer_id, collection_id):
        raise NotFoundError(ApiErrorCode.E_COLLECTION_NOT_FOUND, "Collection not found")

    rows = db.execute(
        select(CollectionMembership)
        .options(joinedload(CollectionMembership.user))
        .where(CollectionMembership.collection_id == collection_id)
        .order_by(CollectionMembership.invited_at.asc(), CollectionMembership.id.asc())
    ).scalars()
    return [MemberOut.model_validate(row) for row in rows]


@reclassify_storage_errors
def list_viewer_invitations(db: Session, viewer_id: str) -> list[InvitationOut]:
    """List invitations addressed to the viewer that are still pending.

    Returns rows ordered by invited_at DESC, id ASC.
    """
    rows = db.execute(
        select(CollectionMembership)
        .options(
            joinedload(CollectionMembership.collection),
            joinedload(CollectionMembership.user),
        )
        .where(
            CollectionMembership.user_id == viewer_id,
            CollectionMembership.accepted.is_(False),
        )
        .order_by(CollectionMembership.invited_at.desc(), CollectionMembership.id.asc())
    ).scalars()
    return [InvitationOut.model_validate(row) for row in rows]
