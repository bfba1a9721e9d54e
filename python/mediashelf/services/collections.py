"""Collection service layer.

All collection-domain business logic lives here.
Routes may not contain domain logic or raw DB access - they must call these functions.

Access rules:
- Reads go through the visibility predicate; invisible and missing are both NotFound
- Mutations go through the access policy: missing is NotFound, insufficient role is Forbidden
- Collection settings and deletion need OWNER; managing contained media needs
  OWNER or COLLABORATOR
"""

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, undefer

from mediashelf.auth.policy import (
    ADMIN_ROLES,
    EDIT_MEDIA_ROLES,
    load_access_snapshot,
    require_collection_role,
)
from mediashelf.auth.visibility import (
    can_read_collection,
    can_read_media,
    collection_read_predicate,
)
from mediashelf.db.models import (
    Collection,
    CollectionMedia,
    CollectionMembership,
    CollectionRole,
    Media,
    Visibility,
    utcnow,
)
from mediashelf.db.session import transaction
from mediashelf.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    reclassify_storage_errors,
)
from mediashelf.logging import get_logger
from mediashelf.schemas.collection import (
    CollectionDetailOut,
    CollectionMediaOut,
    CollectionOut,
)
from mediashelf.schemas.common import ListQuery
from mediashelf.services.filters import (
    ListFilters,
    collection_filter_clauses,
    media_filter_clauses,
)
from mediashelf.services.pagination import Page, paginate
from mediashelf.services.sorting import COLLECTION_MEDIA_SORT, COLLECTION_SORT

logger = get_logger(__name__)

# Strongest first; used to report a single role to the viewer
ROLE_DISPLAY_ORDER = (CollectionRole.OWNER, CollectionRole.COLLABORATOR, CollectionRole.READER)


def _collection_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_COLLECTION_NOT_FOUND, "Collection not found")


def replace_labels(
    db: Session, owner: object, rows_attr: str, proxy_attr: str, values: list[str]
) -> None:
    """Replace a label set, flushing deletions before re-inserting kept labels."""
    getattr(owner, rows_attr).clear()
    db.flush()
    setattr(owner, proxy_attr, values)


# =============================================================================
# Collections
# =============================================================================


@reclassify_storage_errors
def create_collection(
    db: Session,
    viewer_id: str,
    name: str,
    description: str | None = None,
    tags: list[str] | None = None,
    visibility: Visibility = Visibility.PRIVATE,
) -> CollectionOut:
    """Create a collection owned by the viewer.

    Returns:
        The created collection.
    """
    collection = Collection(
        name=name,
        description=description,
        visibility=visibility,
        owner_id=viewer_id,
    )
    collection.tags = list(tags or [])

    with transaction(db):
        db.add(collection)

    logger.info(
        "collection_created",
        collection_id=collection.id,
        visibility=collection.visibility.value,
    )
    return CollectionOut.model_validate(collection)


@reclassify_storage_errors
def list_collections(
    db: Session, viewer_id: str | None, query: ListQuery, base_path: str = "/collections"
) -> Page[CollectionOut]:
    """List collections visible to the viewer, filtered and paginated.

    Raises:
        InvalidRequestError: On an unknown sort key or an unusable cursor.
    """
    filters = ListFilters.from_query(query)
    # media_count is a subquery column; refresh it on rows already in the session
    stmt = (
        select(Collection)
        .where(collection_read_predicate(viewer_id), *collection_filter_clauses(filters))
        .execution_options(populate_existing=True)
    )
    return paginate(
        db,
        stmt,
        id_column=Collection.id,
        sort=COLLECTION_SORT,
        query=query,
        base_path=base_path,
        to_item=CollectionOut.model_validate,
        options=[selectinload(Collection.tag_rows), undefer(Collection.media_count)],
    )


@reclassify_storage_errors
def get_collection(db: Session, viewer_id: str | None, collection_id: str) -> CollectionDetailOut:
    """Get a single collection with the viewer's role and child counts.

    Raises:
        NotFoundError: If the collection does not exist or is not visible.
    """
    collection = db.execute(
        select(Collection)
        .options(selectinload(Collection.tag_rows), undefer(Collection.media_count))
        .where(Collection.id == collection_id, collection_read_predicate(viewer_id))
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if collection is None:
        raise _collection_not_found()

    snapshot = load_access_snapshot(db, collection_id, viewer_id)
    roles = snapshot.effective_roles
    role = next((r for r in ROLE_DISPLAY_ORDER if r in roles), None)

    member_count = db.execute(
        select(func.count()).where(CollectionMembership.collection_id == collection_id)
    ).scalar_one()

    return CollectionDetailOut(
        **CollectionOut.model_validate(collection).model_dump(),
        role=role,
        member_count=member_count,
    )


@reclassify_storage_errors
def update_collection(
    db: Session, viewer_id: str, collection_id: str, changes: dict
) -> CollectionOut:
    """Update name, description, tags or visibility (owner only).

    Raises:
        InvalidRequestError: If no field is given.
        NotFoundError: If the collection does not exist.
        ForbiddenError: If the viewer is not the owner.
    """
    if not changes:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_UPDATE, "No fields to update")

    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, ADMIN_ROLES)
        collection = db.get(Collection, collection_id)
        for field in ("name", "description", "visibility"):
            if field in changes:
                setattr(collection, field, changes[field])
        if "tags" in changes:
            replace_labels(db, collection, "tag_rows", "tags", changes["tags"])
        # Label-only updates leave the row itself clean
        collection.updated_at = utcnow()

    logger.info("collection_updated", collection_id=collection_id, fields=sorted(changes))
    return CollectionOut.model_validate(collection)


@reclassify_storage_errors
def delete_collection(db: Session, viewer_id: str, collection_id: str) -> None:
    """Delete a collection (owner only). Links and memberships cascade in storage.

    Raises:
        NotFoundError: If the collection does not exist.
        ForbiddenError: If the viewer is not the owner.
    """
    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, ADMIN_ROLES)
        db.execute(delete(Collection).where(Collection.id == collection_id))

    logger.info("collection_deleted", collection_id=collection_id)


# =============================================================================
# Collection media
# =============================================================================


def _link_in_collection(db: Session, collection_id: str, link_id: str) -> CollectionMedia:
    link = db.get(CollectionMedia, link_id)
    if link is None or link.collection_id != collection_id:
        raise NotFoundError(
            ApiErrorCode.E_COLLECTION_MEDIA_NOT_FOUND, "Media not found in collection"
        )
    return link


def find_link(db: Session, collection_id: str, media_id: str) -> str | None:
    """Return the id of the (collection, media) link, if any."""
    return db.execute(
        select(CollectionMedia.id).where(
            CollectionMedia.collection_id == collection_id,
            CollectionMedia.media_id == media_id,
        )
    ).scalar_one_or_none()


def link_media(
    db: Session, collection_id: str, media_id: str, position: int = 0
) -> CollectionMedia:
    """Insert a (collection, media) link inside the caller's transaction.

    Raises:
        ConflictError: If the media is already in the collection.
    """
    if find_link(db, collection_id, media_id) is not None:
        raise ConflictError(
            ApiErrorCode.E_MEDIA_ALREADY_IN_COLLECTION, "Media already in collection"
        )

    link = CollectionMedia(collection_id=collection_id, media_id=media_id, position=position)
    try:
        with db.begin_nested():
            db.add(link)
    except IntegrityError:
        # Concurrent add of the same pair won the unique constraint
        raise ConflictError(
            ApiErrorCode.E_MEDIA_ALREADY_IN_COLLECTION, "Media already in collection"
        ) from None
    return link


@reclassify_storage_errors
def add_media_to_collection(
    db: Session, viewer_id: str, collection_id: str, media_id: str, position: int = 0
) -> CollectionMediaOut:
    """Add an existing media item to a collection (OWNER or COLLABORATOR).

    Raises:
        NotFoundError: If the collection or the media does not exist.
        ForbiddenError: If the viewer's role is insufficient.
        ConflictError: If the media is already in the collection.
    """
    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, EDIT_MEDIA_ROLES)
        if not can_read_media(db, viewer_id, media_id):
            raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")
        link = link_media(db, collection_id, media_id, position)

    logger.info("collection_media_added", collection_id=collection_id, media_id=media_id)
    return CollectionMediaOut.model_validate(link)


@reclassify_storage_errors
def list_collection_media(
    db: Session,
    viewer_id: str | None,
    collection_id: str,
    query: ListQuery,
    base_path: str | None = None,
) -> Page[CollectionMediaOut]:
    """List the media of a readable collection, filtered and paginated.

    Media filters (tags, platforms, type, q) apply to the linked media.

    Raises:
        NotFoundError: If the collection does not exist or is not visible.
    """
    if not can_read_collection(db, viewer_id, collection_id):
        raise _collection_not_found()

    filters = ListFilters.from_query(query)
    stmt = (
        select(CollectionMedia)
        .join(CollectionMedia.media)
        .where(
            CollectionMedia.collection_id == collection_id,
            *media_filter_clauses(filters),
        )
    )
    return paginate(
        db,
        stmt,
        id_column=CollectionMedia.id,
        sort=COLLECTION_MEDIA_SORT,
        query=query,
        base_path=base_path or f"/collections/{collection_id}/media",
        to_item=CollectionMediaOut.model_validate,
        options=[
            selectinload(CollectionMedia.media).selectinload(Media.tag_rows),
            selectinload(CollectionMedia.media).selectinload(Media.platform_rows),
        ],
    )


@reclassify_storage_errors
def update_collection_media(
    db: Session, viewer_id: str, collection_id: str, link_id: str, changes: dict
) -> CollectionMediaOut:
    """Update a link's position (OWNER or COLLABORATOR).

    Raises:
        InvalidRequestError: If no field is given.
        NotFoundError: If the collection or link does not exist.
        ForbiddenError: If the viewer's role is insufficient.
    """
    if not changes:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_UPDATE, "No fields to update")

    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, EDIT_MEDIA_ROLES)
        link = _link_in_collection(db, collection_id, link_id)
        if "position" in changes:
            link.position = changes["position"]

    return CollectionMediaOut.model_validate(link)


@reclassify_storage_errors
def remove_media_from_collection(
    db: Session, viewer_id: str, collection_id: str, link_id: str
) -> None:
    """Remove a media item from a collection (OWNER or COLLABORATOR).

    The media item itself is kept.

    Raises:
        NotFoundError: If the collection or link does not exist.
        ForbiddenError: If the viewer's role is insufficient.
    """
    with transaction(db):
        require_collection_role(db, collection_id, viewer_id, EDIT_MEDIA_ROLES)
        link = _link_in_collection(db, collection_id, link_id)
        db.delete(link)

    logger.info("collection_media_removed", collection_id=collection_id, link_id=link_id)
