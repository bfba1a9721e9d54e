"""Collection access policy.

Decides whether a viewer holds one of a set of roles on a collection.

Rules:
- Existence is checked before role: a missing collection is always NotFound
- The owner holds OWNER
- An accepted membership holds exactly its stored role
- An unaccepted membership (a pending invitation) holds nothing, not even READER
- Roles are matched by set membership; there is no role hierarchy

evaluate() is pure. load_access_snapshot() gathers everything it needs in
one query so callers never evaluate against partially loaded state.
"""

from dataclasses import dataclass
from typing import Union

from sqlalchemy import and_, false, select
from sqlalchemy.orm import Session

from mediashelf.db.models import Collection, CollectionMembership, CollectionRole
from mediashelf.errors import ApiErrorCode, ForbiddenError, NotFoundError

READ_ROLES: frozenset[CollectionRole] = frozenset(
    {CollectionRole.OWNER, CollectionRole.COLLABORATOR, CollectionRole.READER}
)
EDIT_MEDIA_ROLES: frozenset[CollectionRole] = frozenset(
    {CollectionRole.OWNER, CollectionRole.COLLABORATOR}
)
ADMIN_ROLES: frozenset[CollectionRole] = frozenset({CollectionRole.OWNER})


@dataclass(frozen=True)
class Owner:
    """Access granted by owning the collection."""


@dataclass(frozen=True)
class Member:
    """Access granted (or pending) through a membership row."""

    role: CollectionRole
    accepted: bool


AccessSource = Union[Owner, Member]


def resolve_roles(sources: tuple[AccessSource, ...]) -> frozenset[CollectionRole]:
    """Collapse access sources into the set of roles they actually grant."""
    roles: set[CollectionRole] = set()
    for source in sources:
        if isinstance(source, Owner):
            roles.add(CollectionRole.OWNER)
        elif source.accepted:
            roles.add(source.role)
    return frozenset(roles)


@dataclass(frozen=True)
class AccessSnapshot:
    """What the store knows about one (collection, viewer) pair."""

    collection_exists: bool
    owner_id: str | None = None
    caller_is_owner: bool = False
    membership: Member | None = None

    @property
    def sources(self) -> tuple[AccessSource, ...]:
        sources: list[AccessSource] = []
        if self.caller_is_owner:
            sources.append(Owner())
        if self.membership is not None:
            sources.append(self.membership)
        return tuple(sources)

    @property
    def effective_roles(self) -> frozenset[CollectionRole]:
        return resolve_roles(self.sources)

    @property
    def caller_accepted_role(self) -> CollectionRole | None:
        if self.membership is not None and self.membership.accepted:
            return self.membership.role
        return None


def evaluate(snapshot: AccessSnapshot, requested: frozenset[CollectionRole]) -> None:
    """Allow, or raise the error that explains the denial.

    Raises:
        NotFoundError: If the collection does not exist.
        ForbiddenError: If none of the viewer's effective roles is requested.
    """
    if not snapshot.collection_exists:
        raise NotFoundError(ApiErrorCode.E_COLLECTION_NOT_FOUND, "Collection not found")

    if snapshot.effective_roles & requested:
        return

    raise ForbiddenError(ApiErrorCode.E_FORBIDDEN, "Insufficient role on collection")


def load_access_snapshot(
    db: Session, collection_id: str, viewer_id: str | None
) -> AccessSnapshot:
    """Load owner and the viewer's membership for a collection in one query."""
    if viewer_id is None:
        membership_match = false()
    else:
        membership_match = CollectionMembership.user_id == viewer_id

    row = db.execute(
        select(
            Collection.owner_id,
            CollectionMembership.role,
            CollectionMembership.accepted,
        )
        .outerjoin(
            CollectionMembership,
            and_(
                CollectionMembership.collection_id == Collection.id,
                membership_match,
            ),
        )
        .where(Collection.id == collection_id)
    ).first()

    if row is None:
        return AccessSnapshot(collection_exists=False)

    owner_id, role, accepted = row
    membership = Member(role=role, accepted=bool(accepted)) if role is not None else None
    return AccessSnapshot(
        collection_exists=True,
        owner_id=owner_id,
        caller_is_owner=viewer_id is not None and owner_id == viewer_id,
        membership=membership,
    )


def require_collection_role(
    db: Session,
    collection_id: str,
    viewer_id: str | None,
    requested: frozenset[CollectionRole],
) -> AccessSnapshot:
    """Load the snapshot for a collection and evaluate it.

    Returns:
        The snapshot, for callers that need the owner or the viewer's role.
    """
    snapshot = load_access_snapshot(db, collection_id, viewer_id)
    evaluate(snapshot, requested)
    return snapshot
