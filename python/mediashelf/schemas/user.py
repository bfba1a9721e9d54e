"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9._-]+$"


class UserOut(BaseModel):
    """Public profile of a user."""

    id: str
    name: str | None
    username: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MeOut(UserOut):
    """The viewer's own profile."""

    email: str | None
    default_collection_id: str | None = None


class UpdateMeRequest(BaseModel):
    """Request body for updating the viewer's profile. At least one field is required.

    Email is owned by the identity provider and is not updatable here.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    username: str | None = Field(
        default=None, min_length=2, max_length=40, pattern=USERNAME_PATTERN
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "username")
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

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
