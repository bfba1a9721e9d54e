"""Visibility predicates for collections and media.

These predicates are the single source of truth for read visibility.
They are ANDed onto every list query and every fetch-by-id.

A collection is readable when:
- it is PUBLIC, OR
- the viewer owns it, OR
- the viewer has an ACCEPTED membership on it

A media item is readable when any collection containing it is readable.
Pending invitations never make anything readable.

Helpers return booleans only; "not found" and "not visible" are the same answer.
"""

from sqlalchemy import ColumnElement, exists, or_, select
from sqlalchemy.orm import Session

from mediashelf.auth.policy import EDIT_MEDIA_ROLES
from mediashelf.db.models import (
    Collection,
    CollectionMedia,
    CollectionMembership,
    Media,
    Visibility,
)


def accepted_membership_exists(viewer_id: str) -> ColumnElement[bool]:
    """EXISTS an accepted membership of the viewer on the enclosing Collection row."""
    return exists().where(
        CollectionMembership.collection_id == Collection.id,
        CollectionMembership.user_id == viewer_id,
        CollectionMembership.accepted.is_(True),
    )


def collection_read_predicate(viewer_id: str | None) -> ColumnElement[bool]:
    """Predicate over Collection rows readable by the viewer (None = anonymous)."""
    public = Collection.visibility == Visibility.PUBLIC
    if viewer_id is None:
        return public
    return or_(
        public,
        Collection.owner_id == viewer_id,
        accepted_membership_exists(viewer_id),
    )


def media_read_predicate(viewer_id: str | None) -> ColumnElement[bool]:
    """Predicate over Media rows contained in at least one readable collection."""
    return exists().where(
        CollectionMedia.media_id == Media.id,
        CollectionMedia.collection_id == Collection.id,
        collection_read_predicate(viewer_id),
    )


def can_read_collection(db: Session, viewer_id: str | None, collection_id: str) -> bool:
    """Check if the viewer can read a collection.

    Returns False if the collection does not exist (no existence leak).
    """
    query = select(
        exists().where(
            Collection.id == collection_id,
            collection_read_predicate(viewer_id),
        )
    )
    return bool(db.execute(query).scalar())


def can_read_media(db: Session, viewer_id: str | None, media_id: str) -> bool:
    """Check if the viewer can read a media item.

    Returns False if the media does not exist (no existence leak).
    """
    query = select(
        exists().where(
            Media.id == media_id,
            media_read_predicate(viewer_id),
        )
    )
    return bool(db.execute(query).scalar())


def can_edit_media(db: Session, viewer_id: str, media_id: str) -> bool:
    """Check if the viewer is OWNER or accepted COLLABORATOR of a collection holding the media."""
    owner_path = exists().where(
        CollectionMedia.media_id == media_id,
        CollectionMedia.collection_id == Collection.id,
        Collection.owner_id == viewer_id,
    )
    collaborator_path = exists().where(
        CollectionMedia.media_id == media_id,
        CollectionMedia.collection_id == CollectionMembership.collection_id,
        CollectionMembership.user_id == viewer_id,
        CollectionMembership.accepted.is_(True),
        CollectionMembership.role.in_(sorted(EDIT_MEDIA_ROLES)),
    )
    return bool(db.execute(select(owner_path | collaborator_path)).scalar())
