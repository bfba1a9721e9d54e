"""Default collection provisioning.

Media created without a target collection lands in the creator's private
"Default" collection, created on first use.

get_or_create_default_collection() is race-safe and idempotent:
- A partial unique index allows one default collection per owner
- The insert runs inside a SAVEPOINT; losing a race rolls back only the
  savepoint and the winner's row is re-read
- It never commits, so it composes with the caller's transaction
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mediashelf.config import get_settings
from mediashelf.db.models import Collection, Visibility
from mediashelf.errors import InternalError
from mediashelf.logging import get_logger

logger = get_logger(__name__)


def find_default_collection(db: Session, owner_id: str) -> Collection | None:
    return db.execute(
        select(Collection).where(
            Collection.owner_id == owner_id,
            Collection.is_default.is_(True),
        )
    ).scalar_one_or_none()


def get_or_create_default_collection(db: Session, owner_id: str) -> Collection:
    """Return the owner's default collection, creating it if needed.

    Args:
        db: Database session (inside the caller's transaction).
        owner_id: The user who owns the default collection.

    Returns:
        The default collection.

    Raises:
        InternalError: If the collection is missing even after losing the insert race.
    """
    existing = find_default_collection(db, owner_id)
    if existing is not None:
        return existing

    collection = Collection(
        name=get_settings().default_collection_name,
        owner_id=owner_id,
        visibility=Visibility.PRIVATE,
        is_default=True,
    )
    try:
        with db.begin_nested():
            db.add(collection)
    except IntegrityError:
        # Lost race: a concurrent request created it first
        existing = find_default_collection(db, owner_id)
        if existing is None:
            logger.error("default_collection_missing_after_race", owner_id=owner_id)
            raise InternalError() from None
        logger.info("default_collection_race_resolved", collection_id=existing.id)
        return existing

    logger.info("default_collection_created", collection_id=collection.id, owner_id=owner_id)
    return collection
