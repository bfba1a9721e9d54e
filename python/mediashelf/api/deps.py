"""FastAPI dependencies for route handlers.

Common dependencies like database sessions and list query parsing.
"""

from typing import Annotated

from fastapi import Depends, Query

from mediashelf.config import get_settings
from mediashelf.db.models import MediaType
from mediashelf.db.session import get_db, get_session_factory
from mediashelf.errors import InvalidRequestError
from mediashelf.schemas.common import ListQuery, SortOrder

__all__ = ["get_db", "get_list_query", "get_session_factory", "ListQueryDep"]


def get_list_query(
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(alias="pageSize", ge=1)] = None,
    tag: str | None = None,
    tags: Annotated[str | None, Query(description="Comma-separated tag list")] = None,
    platform: str | None = None,
    platforms: Annotated[str | None, Query(description="Comma-separated platform list")] = None,
    q: Annotated[str | None, Query(description="Case-insensitive substring search")] = None,
    type: MediaType | None = None,
    sort: str | None = None,
    order: SortOrder | None = None,
    cursor: str | None = None,
) -> ListQuery:
    """Parse the query parameters shared by every list endpoint.

    Raises:
        InvalidRequestError: If pageSize exceeds the configured maximum.
    """
    settings = get_settings()
    if page_size is None:
        page_size = settings.default_page_size
    elif page_size > settings.max_page_size:
        raise InvalidRequestError(
            message=f"pageSize must be at most {settings.max_page_size}"
        )

    return ListQuery(
        page=page,
        page_size=page_size,
        tag=tag,
        tags=tags,
        platform=platform,
        platforms=platforms,
        q=q,
        type=type,
        sort=sort,
        order=order,
        cursor=cursor,
    )


ListQueryDep = Annotated[ListQuery, Depends(get_list_query)]
