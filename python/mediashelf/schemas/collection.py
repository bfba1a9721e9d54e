"""Collection-related Pydantic schemas.

Contains request and response models for collection, collection-media,
membership and invitation endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mediashelf.db.models import CollectionRole, Visibility
from mediashelf.schemas.common import Label, as_list, normalize_labels
from mediashelf.schemas.media import MediaOut
from mediashelf.schemas.user import UserOut

__all__ = [
    "CreateCollectionRequest",
    "UpdateCollectionRequest",
    "AddCollectionMediaRequest",
    "UpdateCollectionMediaRequest",
    "InviteMemberRequest",
    "UpdateMemberRequest",
    "RespondInvitationRequest",
    "CollectionOut",
    "CollectionDetailOut",
    "CollectionSummaryOut",
    "CollectionMediaOut",
    "MemberOut",
    "InvitationOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateCollectionRequest(BaseModel):
    """Request body for creating a new collection."""

    name: str = Field(
        ..., min_length=1, max_length=200, description="Collection name (1-200 chars)"
    )
    description: str | None = Field(default=None, max_length=1000)
    tags: list[Label] = Field(default_factory=list)
    visibility: Visibility = Visibility.PRIVATE

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value: list[str]) -> list[str]:
        return normalize_labels(value)


class UpdateCollectionRequest(BaseModel):
    """Request body for a partial collection update.

    The owner is not updatable. At least one field is required.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    tags: list[Label] | None = None
    visibility: Visibility | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "tags", "visibility")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be null")
        return value

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value: list[str]) -> list[str]:
        return normalize_labels(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AddCollectionMediaRequest(BaseModel):
    """Request body for adding an existing media item to a collection."""

    media_id: str = Field(..., min_length=1, description="ID of the media to add")
    position: int = Field(default=0, ge=0)


class UpdateCollectionMediaRequest(BaseModel):
    """Request body for updating a collection-media link."""

    position: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("position")
    @classmethod
    def not_null(cls, value: int | None) -> int:
        if value is None:
            raise ValueError("position cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class InviteMemberRequest(BaseModel):
    """Request body for inviting a user to a collection."""

    user_id: str = Field(..., min_length=1, description="User to invite")
    role: CollectionRole = CollectionRole.READER


class UpdateMemberRequest(BaseModel):
    """Request body for updating a membership (owner only)."""

    role: CollectionRole | None = None
    accepted: bool | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("role", "accepted")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RespondInvitationRequest(BaseModel):
    """Request body for accepting or rejecting an invitation."""

    accept: bool


# =============================================================================
# Response Schemas
# =============================================================================


class CollectionOut(BaseModel):
    """Response schema for a collection."""

    id: str
    name: str
    description: str | None
    tags: list[str]
    visibility: Visibility
    owner_id: str
    is_default: bool
    media_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, value: Any) -> Any:
        return as_list(value)


class CollectionDetailOut(CollectionOut):
    """A single collection as seen by the viewer.

    role is the viewer's effective role (None for anonymous viewers and
    for viewers who only see the collection because it is public).
    """

    role: CollectionRole | None = None
    member_count: int = 0


class CollectionSummaryOut(BaseModel):
    """Compact collection reference embedded in invitations."""

    id: str
    name: str
    owner_id: str
    visibility: Visibility

    model_config = ConfigDict(from_attributes=True)


class CollectionMediaOut(BaseModel):
    """Response schema for a collection-media link."""

    id: str
    collection_id: str
    media_id: str
    position: int
    added_at: datetime
    media: MediaOut | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberOut(BaseModel):
    """Response schema for a collection membership."""

    id: str
    collection_id: str
    user_id: str
    role: CollectionRole
    accepted: bool
    invited_at: datetime
    user: UserOut | None = None

    model_config = ConfigDict(from_attributes=True)


class InvitationOut(MemberOut):
    """A pending invitation addressed to the viewer."""

    collection: CollectionSummaryOut
