"""Test helpers for identity headers and common seeding operations.

Provides:
- Header generation for gateway-asserted identities
- User id generation
- Seeding helpers for service tests (direct session) and HTTP tests (API calls)
"""

from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mediashelf.auth.middleware import USER_EMAIL_HEADER, USER_ID_HEADER, USER_NAME_HEADER
from mediashelf.db.models import (
    Collection,
    CollectionMedia,
    CollectionMembership,
    CollectionRole,
    Media,
    MediaType,
    User,
    Visibility,
)


def create_test_user_id() -> str:
    """Generate a random user id in the identity provider's format."""
    return f"user-{uuid4()}"


def auth_headers(
    user_id: str, email: str | None = None, name: str | None = None
) -> dict[str, str]:
    """Return the headers the gateway forwards for an authenticated user."""
    headers = {USER_ID_HEADER: user_id}
    if email:
        headers[USER_EMAIL_HEADER] = email
    if name:
        headers[USER_NAME_HEADER] = name
    return headers


# =============================================================================
# Service-level seeding (direct ORM inserts)
# =============================================================================


def create_user(db: Session, user_id: str | None = None, **fields) -> User:
    user = User(id=user_id or create_test_user_id(), **fields)
    db.add(user)
    db.flush()
    return user


def create_collection(
    db: Session,
    owner_id: str,
    name: str = "Watch list",
    visibility: Visibility = Visibility.PRIVATE,
    tags: list[str] | None = None,
    **fields,
) -> Collection:
    collection = Collection(name=name, owner_id=owner_id, visibility=visibility, **fields)
    collection.tags = tags or []
    db.add(collection)
    db.flush()
    return collection


def create_media(
    db: Session,
    title: str = "Stalker",
    type: MediaType = MediaType.FILM,
    tags: list[str] | None = None,
    platforms: list[str] | None = None,
    **fields,
) -> Media:
    media = Media(title=title, type=type, **fields)
    media.tags = tags or []
    media.platforms = platforms or []
    db.add(media)
    db.flush()
    return media


def link_media(
    db: Session, collection_id: str, media_id: str, position: int = 0
) -> CollectionMedia:
    link = CollectionMedia(collection_id=collection_id, media_id=media_id, position=position)
    db.add(link)
    db.flush()
    return link


def add_member(
    db: Session,
    collection_id: str,
    user_id: str,
    role: CollectionRole = CollectionRole.READER,
    accepted: bool = True,
) -> CollectionMembership:
    member = CollectionMembership(
        collection_id=collection_id, user_id=user_id, role=role, accepted=accepted
    )
    db.add(member)
    db.flush()
    return member


# =============================================================================
# HTTP-level seeding (through the API, as a real client would)
# =============================================================================


def register(client: TestClient, user_id: str) -> None:
    """Make one identified request so the identity middleware mirrors the user."""
    response = client.get("/me", headers=auth_headers(user_id))
    assert response.status_code == 200, response.text


def api_create_collection(client: TestClient, user_id: str, **body) -> dict:
    body.setdefault("name", "Watch list")
    response = client.post("/collections", json=body, headers=auth_headers(user_id))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def api_create_media(client: TestClient, user_id: str, **body) -> dict:
    body.setdefault("title", "Stalker")
    body.setdefault("type", "FILM")
    response = client.post("/media", json=body, headers=auth_headers(user_id))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def api_invite(
    client: TestClient, owner_id: str, collection_id: str, user_id: str, role: str = "READER"
) -> dict:
    response = client.post(
        f"/collections/{collection_id}/members",
        json={"user_id": user_id, "role": role},
        headers=auth_headers(owner_id),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def api_respond(client: TestClient, user_id: str, collection_id: str, accept: bool = True):
    return client.post(
        f"/me/invitations/{collection_id}/respond",
        json={"accept": accept},
        headers=auth_headers(user_id),
    )
