"""Offset and cursor pagination over filtered, visibility-scoped selects.

Offset mode (no cursor):
- ORDER BY <sort> <order>, id ASC
- total is an exact count under the same WHERE clause
- pages = ceil(total / page_size); a page past the end yields no data
- links re-serialize the active filters plus page and pageSize

Cursor mode (cursor present, page ignored):
- the cursor is the id of the last item already seen
- rows strictly after the cursor row in (<sort>, id) order are fetched,
  page_size + 1 of them, to learn whether another page exists
- total and pages are 0; prev is always None
- a cursor that does not name a row of the filtered, visible set is rejected

NULL sort values order last in both directions.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel
from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.orm import InstrumentedAttribute, Session
from sqlalchemy.sql.base import ExecutableOption

from mediashelf.errors import ApiErrorCode, InvalidRequestError
from mediashelf.schemas.common import ListQuery

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class SortOption:
    column: InstrumentedAttribute
    nullable: bool = False


@dataclass(frozen=True)
class SortSpec:
    """Whitelisted sort keys for one listing, keyed by their wire names."""

    options: dict[str, SortOption]
    default_sort: str
    default_order: str = "desc"

    def resolve(self, query: ListQuery) -> tuple[SortOption, bool]:
        """Return (sort option, descending) for the query.

        Raises:
            InvalidRequestError: If the sort key is not offered by this listing.
        """
        key = query.sort or self.default_sort
        option = self.options.get(key)
        if option is None:
            allowed = ", ".join(sorted(self.options))
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_SORT, f"Invalid sort '{key}'. Allowed: {allowed}"
            )
        order = query.order or self.default_order
        return option, order == "desc"


@dataclass
class Page(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int
    pages: int
    links: dict[str, str | None] = field(default_factory=dict)
    cursor: str | None = None

    def to_envelope(self) -> dict[str, Any]:
        """Wire form of a list response."""
        return {
            "data": [item.model_dump(mode="json") for item in self.items],
            "page": self.page,
            "pageSize": self.page_size,
            "total": self.total,
            "pages": self.pages,
            "links": self.links,
            "cursor": self.cursor,
        }


def page_count(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size


def _link(base_path: str, params: list[tuple[str, str]]) -> str:
    return f"{base_path}?{urlencode(params)}"


def build_offset_links(
    base_path: str, query: ListQuery, page: int, page_size: int, pages: int
) -> dict[str, str | None]:
    filters = query.filter_params()

    def link(p: int) -> str:
        return _link(base_path, filters + [("page", str(p)), ("pageSize", str(page_size))])

    return {
        "self": link(page),
        "next": link(page + 1) if page < pages else None,
        "prev": link(page - 1) if page > 1 else None,
    }


def build_cursor_links(
    base_path: str, query: ListQuery, page_size: int, next_cursor: str | None
) -> dict[str, str | None]:
    params = query.filter_params() + [("pageSize", str(page_size))]
    self_params = params + [("cursor", query.cursor)] if query.cursor else params
    return {
        "self": _link(base_path, self_params),
        "next": _link(base_path, params + [("cursor", next_cursor)]) if next_cursor else None,
        "prev": None,
    }


def _after_cursor(
    sort_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    nullable: bool,
    descending: bool,
    cursor_value: Any,
    cursor_id: str,
) -> ColumnElement[bool]:
    """Keyset predicate for rows ordered after (cursor_value, cursor_id)."""
    if cursor_value is None:
        # Cursor sits in the NULL tail; only later NULL rows remain
        return and_(sort_column.is_(None), id_column > cursor_id)

    beyond = sort_column < cursor_value if descending else sort_column > cursor_value
    clauses = [beyond, and_(sort_column == cursor_value, id_column > cursor_id)]
    if nullable:
        clauses.append(sort_column.is_(None))
    return or_(*clauses)


def paginate(
    db: Session,
    stmt: Select,
    *,
    id_column: InstrumentedAttribute,
    sort: SortSpec,
    query: ListQuery,
    base_path: str,
    to_item: Callable[[Any], T],
    options: Sequence[ExecutableOption] = (),
) -> Page[T]:
    """Run a list select in offset or cursor mode.

    Args:
        db: Database session.
        stmt: Select of the listed entity, already carrying filter and visibility clauses.
        id_column: Primary key column of the listed entity (the tie-breaker).
        sort: Sort keys this listing accepts.
        query: Parsed list parameters.
        base_path: Path used when building navigation links.
        to_item: Converts one ORM row into its response schema.
        options: Loader options applied to the row fetch (not to count or cursor lookups).

    Raises:
        InvalidRequestError: On an unknown sort key or an unusable cursor.
    """
    option, descending = sort.resolve(query)
    sort_column = option.column
    primary = sort_column.desc() if descending else sort_column.asc()
    if option.nullable:
        primary = primary.nulls_last()
    ordered = stmt.order_by(primary, id_column.asc()).options(*options)
    page_size = query.page_size

    if query.is_cursor_mode:
        cursor_row = db.execute(
            stmt.with_only_columns(sort_column, maintain_column_froms=True).where(
                id_column == query.cursor
            )
        ).first()
        if cursor_row is None:
            raise InvalidRequestError(ApiErrorCode.E_INVALID_CURSOR, "Invalid cursor")

        rows = (
            db.execute(
                ordered.where(
                    _after_cursor(
                        sort_column,
                        id_column,
                        option.nullable,
                        descending,
                        cursor_row[0],
                        query.cursor,
                    )
                ).limit(page_size + 1)
            )
            .scalars()
            .all()
        )
        has_more = len(rows) > page_size
        rows = rows[:page_size]
        next_cursor = rows[-1].id if has_more else None
        return Page(
            items=[to_item(row) for row in rows],
            page=1,
            page_size=page_size,
            total=0,
            pages=0,
            links=build_cursor_links(base_path, query, page_size, next_cursor),
            cursor=next_cursor,
        )

    page = query.page
    total = db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    pages = page_count(total, page_size)
    if page > max(pages, 1):
        # Past the end; also keeps huge page numbers out of the OFFSET clause
        rows = []
    else:
        rows = (
            db.execute(ordered.offset((page - 1) * page_size).limit(page_size))
            .scalars()
            .all()
        )
    return Page(
        items=[to_item(row) for row in rows],
        page=page,
        page_size=page_size,
        total=total,
        pages=pages,
        links=build_offset_links(base_path, query, page, page_size, pages),
        cursor=rows[-1].id if rows else None,
    )
