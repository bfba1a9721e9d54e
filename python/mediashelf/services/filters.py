"""List filter construction.

Filters are parsed once from the query into a typed ListFilters value and
then turned into SQLAlchemy clauses. Both pagination modes share the same
clauses, and callers always AND them with a visibility predicate.

Parsing rules:
- tags/platforms (comma separated) take precedence over tag/platform
- values are trimmed and empty entries dropped
- a label list matches rows having ANY of the labels
- q is a case-insensitive substring match over two text fields, joined with OR
"""

from dataclasses import dataclass

from sqlalchemy import ColumnElement, or_

from mediashelf.db.models import (
    Collection,
    CollectionTag,
    Media,
    MediaPlatform,
    MediaTag,
    MediaType,
)
from mediashelf.schemas.common import ListQuery


def split_labels(plural: str | None, singular: str | None) -> tuple[str, ...]:
    """Parse a comma list, falling back to the singular value when the list is absent."""
    if plural:
        raw = plural.split(",")
    elif singular:
        raw = [singular]
    else:
        return ()
    return tuple(value.strip() for value in raw if value.strip())


@dataclass(frozen=True)
class ListFilters:
    tags: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()
    q: str | None = None
    type: MediaType | None = None

    @classmethod
    def from_query(cls, query: ListQuery) -> "ListFilters":
        q = query.q.strip() if query.q else None
        return cls(
            tags=split_labels(query.tags, query.tag),
            platforms=split_labels(query.platforms, query.platform),
            q=q or None,
            type=query.type,
        )


def collection_filter_clauses(filters: ListFilters) -> list[ColumnElement[bool]]:
    """Clauses over Collection. Platform and type filters do not apply to collections."""
    clauses: list[ColumnElement[bool]] = []
    if filters.tags:
        clauses.append(Collection.tag_rows.any(CollectionTag.tag.in_(filters.tags)))
    if filters.q:
        clauses.append(
            or_(
                Collection.name.icontains(filters.q, autoescape=True),
                Collection.description.icontains(filters.q, autoescape=True),
            )
        )
    return clauses


def media_filter_clauses(filters: ListFilters) -> list[ColumnElement[bool]]:
    """Clauses over Media."""
    clauses: list[ColumnElement[bool]] = []
    if filters.type is not None:
        clauses.append(Media.type == filters.type)
    if filters.tags:
        clauses.append(Media.tag_rows.any(MediaTag.tag.in_(filters.tags)))
    if filters.platforms:
        clauses.append(Media.platform_rows.any(MediaPlatform.platform.in_(filters.platforms)))
    if filters.q:
        clauses.append(
            or_(
                Media.title.icontains(filters.q, autoescape=True),
                Media.description.icontains(filters.q, autoescape=True),
            )
        )
    return clauses
