"""Shared schema pieces: label lists and list-query parameters."""

from collections.abc import Iterable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from mediashelf.config import PAGE_SIZE_LIMIT
from mediashelf.db.models import MediaType

MAX_LABEL_LENGTH = 50

Label = Annotated[str, StringConstraints(strip_whitespace=True, max_length=MAX_LABEL_LENGTH)]
SortOrder = Literal["asc", "desc"]


def normalize_labels(values: Iterable[str] | None) -> list[str]:
    """Trim labels, drop empties and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for value in values or ():
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


def as_list(value: Any) -> Any:
    """Coerce ORM association collections into plain lists for validation."""
    if value is None or isinstance(value, (list, str)):
        return value
    if isinstance(value, Iterable):
        return list(value)
    return value


class ListQuery(BaseModel):
    """Parameters shared by every list endpoint.

    page is ignored when cursor is set.
    """

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=PAGE_SIZE_LIMIT)
    tag: str | None = None
    tags: str | None = None
    platform: str | None = None
    platforms: str | None = None
    q: str | None = None
    type: MediaType | None = None
    sort: str | None = None
    order: SortOrder | None = None
    cursor: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_cursor_mode(self) -> bool:
        return bool(self.cursor)

    def filter_params(self) -> list[tuple[str, str]]:
        """Active filter/sort parameters in wire form, for building links."""
        params: list[tuple[str, str]] = []
        for name in ("type", "tag", "tags", "platform", "platforms", "q", "sort", "order"):
            value = getattr(self, name)
            if value:
                params.append((name, value.value if isinstance(value, MediaType) else value))
        return params
