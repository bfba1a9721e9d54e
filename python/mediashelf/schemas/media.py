"""Media-related Pydantic schemas.

Contains request and response models for media endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from mediashelf.db.models import MediaType
from mediashelf.schemas.common import Label, as_list, normalize_labels

__all__ = [
    "CreateMediaRequest",
    "UpdateMediaRequest",
    "MediaOut",
    "MediaCreatedOut",
]


# =============================================================================
# Request Schemas
# =============================================================================


class CreateMediaRequest(BaseModel):
    """Request body for creating a media item.

    Without collection_id the item goes into the viewer's private
    "Default" collection, which is created on first use.
    """

    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = Field(default=None, max_length=1000)
    url: HttpUrl | None = None
    type: MediaType
    release_date: datetime | None = None
    director_author: str | None = Field(default=None, max_length=200)
    tags: list[Label] = Field(default_factory=list)
    platforms: list[Label] = Field(default_factory=list)
    scores: dict[str, Any] | None = None
    collection_id: str | None = Field(default=None, description="Target collection")
    position: int = Field(default=0, ge=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags", "platforms")
    @classmethod
    def clean_labels(cls, value: list[str]) -> list[str]:
        return normalize_labels(value)


class UpdateMediaRequest(BaseModel):
    """Request body for a partial media update. At least one field is required."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = Field(default=None, max_length=1000)
    url: HttpUrl | None = None
    type: MediaType | None = None
    release_date: datetime | None = None
    director_author: str | None = Field(default=None, max_length=200)
    tags: list[Label] | None = None
    platforms: list[Label] | None = None
    scores: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("title", "type", "tags", "platforms")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be null")
        return value

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags", "platforms")
    @classmethod
    def clean_labels(cls, value: list[str]) -> list[str]:
        return normalize_labels(value)

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, in storage form."""
        data = self.model_dump(exclude_unset=True)
        if data.get("url") is not None:
            data["url"] = str(data["url"])
        return data


# =============================================================================
# Response Schemas
# =============================================================================


class MediaOut(BaseModel):
    """Response schema for a media item."""

    id: str
    title: str
    description: str | None
    url: str | None
    type: MediaType
    release_date: datetime | None
    director_author: str | None
    tags: list[str]
    platforms: list[str]
    scores: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("tags", "platforms", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        return as_list(value)


class MediaCreatedOut(MediaOut):
    """A newly created media item and the collection link created with it."""

    collection_id: str
    collection_media_id: str
