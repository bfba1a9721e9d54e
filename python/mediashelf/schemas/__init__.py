"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from mediashelf.schemas.collection import (
    AddCollectionMediaRequest,
    CollectionDetailOut,
    CollectionMediaOut,
    CollectionOut,
    CollectionSummaryOut,
    CreateCollectionRequest,
    InvitationOut,
    InviteMemberRequest,
    MemberOut,
    RespondInvitationRequest,
    UpdateCollectionMediaRequest,
    UpdateCollectionRequest,
    UpdateMemberRequest,
)
from mediashelf.schemas.common import ListQuery
from mediashelf.schemas.media import (
    CreateMediaRequest,
    MediaCreatedOut,
    MediaOut,
    UpdateMediaRequest,
)
from mediashelf.schemas.user import MeOut, UpdateMeRequest, UserOut

__all__ = [
    # Common
    "ListQuery",
    # Collection
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
    # Media
    "CreateMediaRequest",
    "UpdateMediaRequest",
    "MediaOut",
    "MediaCreatedOut",
    # User
    "UserOut",
    "MeOut",
    "UpdateMeRequest",
]
