"""Media service layer.

Media has no owner of its own. Access derives from the collections holding it:
- readable when any containing collection is readable
- editable when the viewer is OWNER or accepted COLLABORATOR of any containing collection

Creating media always links it to a collection in the same transaction, so
a media item is never created unreachable.
"""

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from mediashelf.auth.policy import EDIT_MEDIA_ROLES, require_collection_role
from mediashelf.auth.visibility import can_edit_media, can_read_media, media_read_predicate
from mediashelf.db.models import Media, utcnow
from mediashelf.db.session import transaction
from mediashelf.errors import (
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    reclassify_storage_errors,
)
from mediashelf.logging import get_logger
from mediashelf.schemas.common import ListQuery
from mediashelf.schemas.media import CreateMediaRequest, MediaCreatedOut, MediaOut
from mediashelf.services.collections import link_media, replace_labels
from mediashelf.services.default_collection import get_or_create_default_collection
from mediashelf.services.filters import ListFilters, media_filter_clauses
from mediashelf.services.pagination import Page, paginate
from mediashelf.services.sorting import MEDIA_SORT

logger = get_logger(__name__)

_MEDIA_LOAD_OPTIONS = (selectinload(Media.tag_rows), selectinload(Media.platform_rows))


def _media_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")


def _require_media_editor(db: Session, viewer_id: str, media_id: str) -> Media:
    if not can_read_media(db, viewer_id, media_id):
        raise _media_not_found()
    if not can_edit_media(db, viewer_id, media_id):
        raise ForbiddenError(ApiErrorCode.E_FORBIDDEN, "Insufficient role on media")
    return db.get(Media, media_id)


@reclassify_storage_errors
def create_media(db: Session, viewer_id: str, request: CreateMediaRequest) -> MediaCreatedOut:
    """Create a media item and link it to a collection atomically.

    With request.collection_id the viewer needs OWNER or COLLABORATOR on that
    collection. Without it the item goes into the viewer's "Default"
    collection, created on first use. Any failure rolls back all of it.

    Raises:
        NotFoundError: If the target collection does not exist.
        ForbiddenError: If the viewer cannot add media to the target collection.
    """
    with transaction(db):
        if request.collection_id:
            require_collection_role(db, request.collection_id, viewer_id, EDIT_MEDIA_ROLES)
            collection_id = request.collection_id
        else:
            collection_id = get_or_create_default_collection(db, viewer_id).id

        media = Media(
            title=request.title,
            description=request.description,
            url=str(request.url) if request.url else None,
            type=request.type,
            release_date=request.release_date,
            director_author=request.director_author,
            scores=request.scores,
        )
        media.tags = request.tags
        media.platforms = request.platforms
        db.add(media)
        db.flush()

        link = link_media(db, collection_id, media.id, request.position)

    logger.info("media_created", media_id=media.id, collection_id=collection_id)
    return MediaCreatedOut(
        **MediaOut.model_validate(media).model_dump(),
        collection_id=collection_id,
        collection_media_id=link.id,
    )


@reclassify_storage_errors
def list_media(
    db: Session, viewer_id: str | None, query: ListQuery, base_path: str = "/media"
) -> Page[MediaOut]:
    """List media visible to the viewer, filtered and paginated.

    Raises:
        InvalidRequestError: On an unknown sort key or an unusable cursor.
    """
    filters = ListFilters.from_query(query)
    stmt = select(Media).where(
        media_read_predicate(viewer_id),
        *media_filter_clauses(filters),
    )
    return paginate(
        db,
        stmt,
        id_column=Media.id,
        sort=MEDIA_SORT,
        query=query,
        base_path=base_path,
        to_item=MediaOut.model_validate,
        options=_MEDIA_LOAD_OPTIONS,
    )


@reclassify_storage_errors
def get_media(db: Session, viewer_id: str | None, media_id: str) -> MediaOut:
    """Get a media item.

    Raises:
        NotFoundError: If the media does not exist or is not visible.
    """
    media = db.execute(
        select(Media)
        .options(*_MEDIA_LOAD_OPTIONS)
        .where(Media.id == media_id, media_read_predicate(viewer_id))
    ).scalar_one_or_none()
    if media is None:
        raise _media_not_found()
    return MediaOut.model_validate(media)


@reclassify_storage_errors
def update_media(db: Session, viewer_id: str, media_id: str, changes: dict) -> MediaOut:
    """Partially update a media item.

    Raises:
        InvalidRequestError: If no field is given.
        NotFoundError: If the media does not exist or is not visible.
        ForbiddenError: If the viewer only has read access.
    """
    if not changes:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_UPDATE, "No fields to update")

    with transaction(db):
        media = _require_media_editor(db, viewer_id, media_id)
        for field, value in changes.items():
            if field == "tags":
                replace_labels(db, media, "tag_rows", "tags", value)
            elif field == "platforms":
                replace_labels(db, media, "platform_rows", "platforms", value)
            else:
                setattr(media, field, value)
        media.updated_at = utcnow()

    logger.info("media_updated", media_id=media_id, fields=sorted(changes))
    return MediaOut.model_validate(media)


@reclassify_storage_errors
def delete_media(db: Session, viewer_id: str, media_id: str) -> None:
    """Delete a media item everywhere. Its collection links cascade in storage.

    Raises:
        NotFoundError: If the media does not exist or is not visible.
        ForbiddenError: If the viewer only has read access.
    """
    with transaction(db):
        _require_media_editor(db, viewer_id, media_id)
        db.execute(delete(Media).where(Media.id == media_id))

    logger.info("media_deleted", media_id=media_id)
