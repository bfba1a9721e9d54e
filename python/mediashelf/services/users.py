"""User service layer.

Users are owned by the identity provider. This service only mirrors the
ids (and profile hints) the gateway forwards, and serves public profiles.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, undefer

from mediashelf.db.models import Collection, User, Visibility
from mediashelf.db.session import transaction
from mediashelf.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    reclassify_storage_errors,
)
from mediashelf.logging import get_logger
from mediashelf.schemas.collection import CollectionOut
from mediashelf.schemas.common import ListQuery
from mediashelf.schemas.user import MeOut, UserOut
from mediashelf.services.default_collection import find_default_collection
from mediashelf.services.pagination import Page, paginate
from mediashelf.services.sorting import COLLECTION_SORT

logger = get_logger(__name__)


def ensure_user(
    db: Session, user_id: str, email: str | None = None, name: str | None = None
) -> None:
    """Ensure a user row exists for a gateway-asserted identity.

    Race-safe and idempotent: concurrent first requests of the same user
    converge on one row. The email hint overwrites the stored email. The name
    hint only fills an empty name, so a name set with update_me is kept.
    """
    with transaction(db):
        user = db.get(User, user_id)
        if user is None:
            try:
                with db.begin_nested():
                    db.add(User(id=user_id, email=email, name=name))
            except IntegrityError:
                logger.info("user_bootstrap_race_resolved", user_id=user_id)
                return
            logger.info("user_created", user_id=user_id)
            return

        if email and user.email != email:
            user.email = email
        if name and not user.name:
            user.name = name


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return user


@reclassify_storage_errors
def get_me(db: Session, viewer_id: str) -> MeOut:
    """Return the viewer's own profile, including their default collection if any."""
    user = _get_user_or_404(db, viewer_id)
    default = find_default_collection(db, viewer_id)
    return MeOut(
        id=user.id,
        name=user.name,
        username=user.username,
        email=user.email,
        created_at=user.created_at,
        default_collection_id=default.id if default else None,
    )


def find_username_owner(db: Session, username: str) -> str | None:
    """Return the id of the user holding username, if any."""
    return db.execute(select(User.id).where(User.username == username)).scalar_one_or_none()


def _username_taken() -> ConflictError:
    return ConflictError(ApiErrorCode.E_USERNAME_TAKEN, "Username is already taken")


@reclassify_storage_errors
def update_me(db: Session, viewer_id: str, changes: dict) -> MeOut:
    """Update the viewer's name and/or username.

    Raises:
        InvalidRequestError: If no field is given.
        NotFoundError: If the viewer has no user row.
        ConflictError: If the username belongs to another user.
    """
    if not changes:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_UPDATE, "No fields to update")

    with transaction(db):
        user = _get_user_or_404(db, viewer_id)
        username = changes.get("username")
        if username is not None and username != user.username:
            owner_id = find_username_owner(db, username)
            if owner_id is not None:
                raise _username_taken()
        try:
            with db.begin_nested():
                for field, value in changes.items():
                    setattr(user, field, value)
        except IntegrityError:
            # Concurrent claim of the same username won the unique constraint
            raise _username_taken() from None

    logger.info("user_updated", user_id=viewer_id, fields=sorted(changes))
    return get_me(db, viewer_id)


@reclassify_storage_errors
def get_user(db: Session, user_id: str) -> UserOut:
    """Return a user's public profile.

    Raises:
        NotFoundError: If the user does not exist.
    """
    return UserOut.model_validate(_get_user_or_404(db, user_id))


@reclassify_storage_errors
def list_public_collections(
    db: Session, user_id: str, query: ListQuery, base_path: str
) -> Page[CollectionOut]:
    """List the PUBLIC collections owned by a user.

    Raises:
        NotFoundError: If the user does not exist.
    """
    _get_user_or_404(db, user_id)
    stmt = select(Collection).where(
        Collection.owner_id == user_id,
        Collection.visibility == Visibility.PUBLIC,
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
