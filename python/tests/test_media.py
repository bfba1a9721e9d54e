"""Tests for media endpoints and media creation.

Tests cover:
- Creating media into the lazily provisioned default collection
- Creating media into an explicit collection (OWNER or COLLABORATOR only)
- Creation is atomic: a failed link leaves no media and no default collection
- Read access through collections, edit access for owners and collaborators
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mediashelf.db.models import Collection, Media, MediaType
from mediashelf.errors import ApiErrorCode, ConflictError
from mediashelf.schemas.media import CreateMediaRequest
from mediashelf.services import media as media_service
from tests.helpers import (
    api_create_collection,
    api_create_media,
    api_invite,
    api_respond,
    auth_headers,
    create_test_user_id,
    create_user,
    register,
)


class TestCreateMedia:
    def test_create_without_collection_uses_default(self, client: TestClient):
        user_id = create_test_user_id()

        first = api_create_media(
            client,
            user_id,
            title="Solaris",
            tags=["sci-fi"],
            platforms=["criterion"],
            url="https://example.com/solaris",
            scores={"imdb": 8.0},
        )
        second = api_create_media(client, user_id, title="Stalker")

        assert first["collection_id"] == second["collection_id"]
        assert first["tags"] == ["sci-fi"]
        assert first["platforms"] == ["criterion"]
        assert first["url"] == "https://example.com/solaris"
        assert first["scores"] == {"imdb": 8.0}

        me = client.get("/me", headers=auth_headers(user_id)).json()["data"]
        assert me["default_collection_id"] == first["collection_id"]

        default = client.get(
            f"/collections/{first['collection_id']}", headers=auth_headers(user_id)
        ).json()["data"]
        assert default["name"] == "Default"
        assert default["visibility"] == "PRIVATE"
        assert default["is_default"] is True
        assert default["media_count"] == 2

    def test_create_into_explicit_collection(self, client: TestClient):
        user_id = create_test_user_id()
        collection = api_create_collection(client, user_id)

        media = api_create_media(client, user_id, collection_id=collection["id"], position=4)

        assert media["collection_id"] == collection["id"]
        links = client.get(
            f"/collections/{collection['id']}/media", headers=auth_headers(user_id)
        ).json()["data"]
        assert [(link["id"], link["position"]) for link in links] == [
            (media["collection_media_id"], 4)
        ]

    def test_reader_cannot_create_into_collection(self, client: TestClient):
        owner_id = create_test_user_id()
        reader_id = create_test_user_id()
        register(client, reader_id)
        collection = api_create_collection(client, owner_id)
        api_invite(client, owner_id, collection["id"], reader_id)
        api_respond(client, reader_id, collection["id"])

        response = client.post(
            "/media",
            json={"title": "Nope", "type": "FILM", "collection_id": collection["id"]},
            headers=auth_headers(reader_id),
        )

        assert response.status_code == 403

    def test_missing_collection_is_404(self, client: TestClient):
        response = client.post(
            "/media",
            json={"title": "Nope", "type": "FILM", "collection_id": "missing"},
            headers=auth_headers(create_test_user_id()),
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_COLLECTION_NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [
            {"title": "", "type": "FILM"},
            {"title": "   ", "type": "FILM"},
            {"title": "x" * 301, "type": "FILM"},
            {"title": "Ok", "type": "PODCAST"},
            {"title": "Ok", "type": "FILM", "url": "not a url"},
            {"title": "Ok", "type": "FILM", "position": -1},
        ],
    )
    def test_invalid_input_is_400(self, client: TestClient, body: dict):
        response = client.post("/media", json=body, headers=auth_headers(create_test_user_id()))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_anonymous_cannot_create(self, client: TestClient):
        response = client.post("/media", json={"title": "Ok", "type": "FILM"})

        assert response.status_code == 401


class TestCreateMediaAtomicity:
    def test_failed_link_rolls_back_media_and_default_collection(
        self, db_session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        user = create_user(db_session)
        db_session.commit()

        def failing_link(*args, **kwargs):
            raise ConflictError(ApiErrorCode.E_MEDIA_ALREADY_IN_COLLECTION, "boom")

        monkeypatch.setattr(media_service, "link_media", failing_link)

        with pytest.raises(ConflictError):
            media_service.create_media(
                db_session, user.id, CreateMediaRequest(title="Ghost", type=MediaType.FILM)
            )

        media_count = db_session.execute(select(func.count()).select_from(Media)).scalar_one()
        collection_count = db_session.execute(
            select(func.count()).where(Collection.owner_id == user.id)
        ).scalar_one()
        assert media_count == 0
        assert collection_count == 0


class TestReadMedia:
    def test_private_media_is_hidden(self, client: TestClient):
        owner_id = create_test_user_id()
        media = api_create_media(client, owner_id)
        path = f"/media/{media['id']}"

        assert client.get(path, headers=auth_headers(owner_id)).status_code == 200
        assert client.get(path).status_code == 404
        response = client.get(path, headers=auth_headers(create_test_user_id()))
        assert response.json()["error"]["code"] == "E_MEDIA_NOT_FOUND"

    def test_list_media_respects_visibility_and_filters(self, client: TestClient):
        owner_id = create_test_user_id()
        public = api_create_collection(client, owner_id, visibility="PUBLIC")
        api_create_media(client, owner_id, title="Seen", type="BOOK", collection_id=public["id"])
        api_create_media(client, owner_id, title="Film", type="FILM", collection_id=public["id"])
        api_create_media(client, owner_id, title="Hidden", type="BOOK")

        anonymous = client.get("/media").json()
        books = client.get("/media", params={"type": "BOOK"}, headers=auth_headers(owner_id))

        assert {m["title"] for m in anonymous["data"]} == {"Seen", "Film"}
        assert anonymous["total"] == 2
        assert {m["title"] for m in books.json()["data"]} == {"Seen", "Hidden"}

    def test_media_in_two_collections_is_listed_once(self, client: TestClient):
        owner_id = create_test_user_id()
        a = api_create_collection(client, owner_id, name="A")
        b = api_create_collection(client, owner_id, name="B")
        media = api_create_media(client, owner_id, collection_id=a["id"])
        client.post(
            f"/collections/{b['id']}/media",
            json={"media_id": media["id"]},
            headers=auth_headers(owner_id),
        )

        listing = client.get("/media", headers=auth_headers(owner_id)).json()

        assert [m["id"] for m in listing["data"]] == [media["id"]]
        assert listing["total"] == 1


class TestUpdateAndDeleteMedia:
    @pytest.fixture
    def shared(self, client: TestClient):
        """A private collection with one media item, a collaborator and a reader."""
        owner_id = create_test_user_id()
        collaborator_id = create_test_user_id()
        reader_id = create_test_user_id()
        register(client, collaborator_id)
        register(client, reader_id)
        collection = api_create_collection(client, owner_id)
        media = api_create_media(client, owner_id, collection_id=collection["id"])
        api_invite(client, owner_id, collection["id"], collaborator_id, role="COLLABORATOR")
        api_respond(client, collaborator_id, collection["id"])
        api_invite(client, owner_id, collection["id"], reader_id)
        api_respond(client, reader_id, collection["id"])
        return {
            "owner": owner_id,
            "collaborator": collaborator_id,
            "reader": reader_id,
            "media": media,
        }

    def test_collaborator_updates_media(self, client: TestClient, shared):
        response = client.patch(
            f"/media/{shared['media']['id']}",
            json={"title": "Director's cut", "tags": ["classic"], "release_date": None},
            headers=auth_headers(shared["collaborator"]),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Director's cut"
        assert data["tags"] == ["classic"]

    def test_reader_cannot_update(self, client: TestClient, shared):
        response = client.patch(
            f"/media/{shared['media']['id']}",
            json={"title": "Nope"},
            headers=auth_headers(shared["reader"]),
        )

        assert response.status_code == 403

    def test_stranger_gets_not_found(self, client: TestClient, shared):
        response = client.patch(
            f"/media/{shared['media']['id']}",
            json={"title": "Nope"},
            headers=auth_headers(create_test_user_id()),
        )

        assert response.status_code == 404

    def test_empty_and_null_updates_are_rejected(self, client: TestClient, shared):
        path = f"/media/{shared['media']['id']}"
        headers = auth_headers(shared["owner"])

        empty = client.patch(path, json={}, headers=headers)
        null_title = client.patch(path, json={"title": None}, headers=headers)

        assert empty.json()["error"]["code"] == "E_EMPTY_UPDATE"
        assert null_title.status_code == 400

    def test_owner_deletes_media(self, client: TestClient, shared):
        path = f"/media/{shared['media']['id']}"

        assert client.delete(path, headers=auth_headers(shared["reader"])).status_code == 403
        assert client.delete(path, headers=auth_headers(shared["owner"])).status_code == 204
        assert client.get(path, headers=auth_headers(shared["owner"])).status_code == 404
