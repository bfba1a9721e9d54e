"""Tests for the membership and invitation lifecycle.

Tests cover:
- Only the owner invites, updates and removes members
- An existing row (pending or accepted) blocks a second invitation
- Accepting twice is a conflict; rejecting deletes the row and allows a re-invite
- Pending invitations grant no access
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from mediashelf.db.models import CollectionMembership, CollectionRole
from mediashelf.errors import (
    ApiErrorCode,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from mediashelf.services.invitations import (
    invite_member,
    list_members,
    list_viewer_invitations,
    remove_member,
    respond_to_invitation,
    update_member,
)
from tests.helpers import (
    add_member,
    api_create_collection,
    api_invite,
    api_respond,
    auth_headers,
    create_collection,
    create_test_user_id,
    create_user,
    register,
)


@pytest.fixture
def trio(db_session: Session):
    """An owner, a second user, and a private collection of the owner."""
    owner = create_user(db_session)
    other = create_user(db_session)
    collection = create_collection(db_session, owner.id)
    return owner, other, collection


class TestInviteMember:
    def test_invite_creates_pending_row(self, db_session: Session, trio):
        owner, other, collection = trio

        member = invite_member(
            db_session, owner.id, collection.id, other.id, CollectionRole.COLLABORATOR
        )

        assert member.accepted is False
        assert member.role == CollectionRole.COLLABORATOR
        assert member.user_id == other.id

    def test_invite_defaults_to_reader(self, db_session: Session, trio):
        owner, other, collection = trio

        assert invite_member(db_session, owner.id, collection.id, other.id).role == (
            CollectionRole.READER
        )

    @pytest.mark.parametrize("accepted", [False, True])
    def test_existing_row_is_a_conflict(self, db_session: Session, trio, accepted: bool):
        owner, other, collection = trio
        add_member(db_session, collection.id, other.id, accepted=accepted)

        with pytest.raises(ConflictError) as exc_info:
            invite_member(db_session, owner.id, collection.id, other.id)

        assert exc_info.value.code == ApiErrorCode.E_MEMBER_ALREADY_EXISTS

    def test_inviting_the_owner_is_a_conflict(self, db_session: Session, trio):
        owner, _, collection = trio

        with pytest.raises(ConflictError):
            invite_member(db_session, owner.id, collection.id, owner.id)

    def test_unknown_invitee_is_not_found(self, db_session: Session, trio):
        owner, _, collection = trio

        with pytest.raises(NotFoundError) as exc_info:
            invite_member(db_session, owner.id, collection.id, "ghost")

        assert exc_info.value.code == ApiErrorCode.E_USER_NOT_FOUND

    def test_collaborator_cannot_invite(self, db_session: Session, trio):
        owner, other, collection = trio
        third = create_user(db_session)
        add_member(db_session, collection.id, other.id, CollectionRole.COLLABORATOR)

        with pytest.raises(ForbiddenError):
            invite_member(db_session, other.id, collection.id, third.id)

    def test_missing_collection_is_not_found(self, db_session: Session, trio):
        owner, other, _ = trio

        with pytest.raises(NotFoundError) as exc_info:
            invite_member(db_session, owner.id, "missing", other.id)

        assert exc_info.value.code == ApiErrorCode.E_COLLECTION_NOT_FOUND


class TestRespondToInvitation:
    def test_accept_flips_flag(self, db_session: Session, trio):
        owner, other, collection = trio
        invite_member(db_session, owner.id, collection.id, other.id)

        member = respond_to_invitation(db_session, other.id, collection.id, accept=True)

        assert member is not None
        assert member.accepted is True

    def test_accepting_twice_is_a_conflict(self, db_session: Session, trio):
        owner, other, collection = trio
        invite_member(db_session, owner.id, collection.id, other.id)
        respond_to_invitation(db_session, other.id, collection.id, accept=True)

        with pytest.raises(ConflictError) as exc_info:
            respond_to_invitation(db_session, other.id, collection.id, accept=True)

        assert exc_info.value.code == ApiErrorCode.E_INVITATION_ALREADY_ACCEPTED

    def test_reject_deletes_row_and_allows_reinvite(self, db_session: Session, trio):
        owner, other, collection = trio
        invite_member(db_session, owner.id, collection.id, other.id)

        assert respond_to_invitation(db_session, other.id, collection.id, accept=False) is None

        rows = db_session.execute(
            select(CollectionMembership).where(CollectionMembership.user_id == other.id)
        ).all()
        assert rows == []
        assert invite_member(db_session, owner.id, collection.id, other.id).accepted is False

    def test_without_invitation_is_not_found(self, db_session: Session, trio):
        _, other, collection = trio

        with pytest.raises(NotFoundError) as exc_info:
            respond_to_invitation(db_session, other.id, collection.id, accept=True)

        assert exc_info.value.code == ApiErrorCode.E_INVITATION_NOT_FOUND


class TestManageMembers:
    def test_owner_updates_role(self, db_session: Session, trio):
        owner, other, collection = trio
        member = add_member(db_session, collection.id, other.id)

        updated = update_member(
            db_session, owner.id, collection.id, member.id, {"role": CollectionRole.COLLABORATOR}
        )

        assert updated.role == CollectionRole.COLLABORATOR

    def test_empty_update_is_rejected(self, db_session: Session, trio):
        owner, other, collection = trio
        member = add_member(db_session, collection.id, other.id)

        with pytest.raises(InvalidRequestError) as exc_info:
            update_member(db_session, owner.id, collection.id, member.id, {})

        assert exc_info.value.code == ApiErrorCode.E_EMPTY_UPDATE

    def test_member_of_other_collection_is_not_found(self, db_session: Session, trio):
        owner, other, collection = trio
        elsewhere = create_collection(db_session, owner.id, "Elsewhere")
        member = add_member(db_session, elsewhere.id, other.id)

        with pytest.raises(NotFoundError) as exc_info:
            remove_member(db_session, owner.id, collection.id, member.id)

        assert exc_info.value.code == ApiErrorCode.E_MEMBER_NOT_FOUND

    def test_owner_removes_pending_invitation(self, db_session: Session, trio):
        owner, other, collection = trio
        member = add_member(db_session, collection.id, other.id, accepted=False)

        remove_member(db_session, owner.id, collection.id, member.id)

        assert list_members(db_session, owner.id, collection.id) == []

    def test_members_listed_in_invitation_order(self, db_session: Session, trio):
        owner, other, collection = trio
        third = create_user(db_session)
        later = add_member(db_session, collection.id, other.id, accepted=False)
        earlier = add_member(db_session, collection.id, third.id)
        later.invited_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
        earlier.invited_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        db_session.flush()

        ids = [m.id for m in list_members(db_session, owner.id, collection.id)]

        assert ids == [earlier.id, later.id]

    def test_members_carry_user_profile(self, db_session: Session, trio):
        owner, _, collection = trio
        member_user = create_user(db_session, name="Ada", username="ada", email="ada@example.com")
        add_member(db_session, collection.id, member_user.id)

        [member] = list_members(db_session, owner.id, collection.id)

        assert member.user.id == member_user.id
        assert member.user.username == "ada"
        assert "email" not in member.user.model_dump()

    def test_pending_invitee_cannot_list_members(self, db_session: Session, trio):
        owner, other, collection = trio
        add_member(db_session, collection.id, other.id, accepted=False)

        with pytest.raises(NotFoundError):
            list_members(db_session, other.id, collection.id)

    def test_viewer_invitations_only_pending(self, db_session: Session, trio):
        owner, other, collection = trio
        accepted_in = create_collection(db_session, owner.id, "Accepted")
        add_member(db_session, accepted_in.id, other.id, accepted=True)
        invite_member(db_session, owner.id, collection.id, other.id)

        invitations = list_viewer_invitations(db_session, other.id)

        assert [inv.collection.id for inv in invitations] == [collection.id]
        assert invitations[0].collection.name == collection.name


class TestCollaboratorScenario:
    """Owner O shares a private collection with user U as collaborator."""

    def test_full_flow_over_http(self, client: TestClient):
        owner_id = create_test_user_id()
        user_id = create_test_user_id()
        register(client, user_id)
        collection = api_create_collection(client, owner_id, name="Movie night")
        path = f"/collections/{collection['id']}"

        # Pending: U sees the invitation but not the collection
        member = api_invite(client, owner_id, collection["id"], user_id, role="COLLABORATOR")
        assert member["accepted"] is False
        assert member["user"]["id"] == user_id

        invitations = client.get("/me/invitations", headers=auth_headers(user_id)).json()["data"]
        assert [inv["collection"]["id"] for inv in invitations] == [collection["id"]]
        assert client.get(path, headers=auth_headers(user_id)).status_code == 404

        # Accepted: U reads and adds media
        response = api_respond(client, user_id, collection["id"], accept=True)
        assert response.status_code == 200
        assert response.json()["data"]["accepted"] is True

        detail = client.get(path, headers=auth_headers(user_id)).json()["data"]
        assert detail["role"] == "COLLABORATOR"

        created = client.post(
            "/media",
            json={"title": "Arrival", "type": "FILM", "collection_id": collection["id"]},
            headers=auth_headers(user_id),
        )
        assert created.status_code == 201

        # Collaborators cannot administer the collection
        response = client.patch(path, json={"name": "Mine now"}, headers=auth_headers(user_id))
        assert response.status_code == 403

        response = api_respond(client, user_id, collection["id"], accept=True)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVITATION_ALREADY_ACCEPTED"

        # Removed: U loses access again
        response = client.delete(f"{path}/members/{member['id']}", headers=auth_headers(owner_id))
        assert response.status_code == 204
        assert client.get(path, headers=auth_headers(user_id)).status_code == 404

    def test_reject_over_http_returns_null(self, client: TestClient):
        owner_id = create_test_user_id()
        user_id = create_test_user_id()
        register(client, user_id)
        collection = api_create_collection(client, owner_id)
        api_invite(client, owner_id, collection["id"], user_id)

        response = api_respond(client, user_id, collection["id"], accept=False)

        assert response.status_code == 200
        assert response.json() == {"data": None}
        assert client.get("/me/invitations", headers=auth_headers(user_id)).json()["data"] == []

    def test_duplicate_invite_over_http_is_400(self, client: TestClient):
        owner_id = create_test_user_id()
        user_id = create_test_user_id()
        register(client, user_id)
        collection = api_create_collection(client, owner_id)
        api_invite(client, owner_id, collection["id"], user_id)

        response = client.post(
            f"/collections/{collection['id']}/members",
            json={"user_id": user_id},
            headers=auth_headers(owner_id),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_MEMBER_ALREADY_EXISTS"
