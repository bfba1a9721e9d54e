"""Tests for default collection provisioning."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mediashelf.db.models import Collection, Visibility
from mediashelf.services import default_collection as default_collection_service
from mediashelf.services.default_collection import (
    find_default_collection,
    get_or_create_default_collection,
)
from tests.helpers import create_collection, create_user


class TestGetOrCreateDefaultCollection:
    def test_creates_private_default_once(self, db_session: Session):
        user = create_user(db_session)

        first = get_or_create_default_collection(db_session, user.id)
        second = get_or_create_default_collection(db_session, user.id)

        assert first.id == second.id
        assert first.is_default is True
        assert first.visibility == Visibility.PRIVATE
        assert first.name == "Default"

    def test_regular_collections_are_not_default(self, db_session: Session):
        user = create_user(db_session)
        create_collection(db_session, user.id, "Default")

        assert find_default_collection(db_session, user.id) is None

    def test_lost_race_returns_winner(
        self, db_session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        user = create_user(db_session)
        winner = create_collection(db_session, user.id, "Default", is_default=True)
        calls = []

        def racing_find(db, owner_id):
            calls.append(owner_id)
            if len(calls) == 1:
                return None
            return find_default_collection(db, owner_id)

        monkeypatch.setattr(default_collection_service, "find_default_collection", racing_find)

        result = get_or_create_default_collection(db_session, user.id)

        assert result.id == winner.id
        count = db_session.execute(
            select(func.count()).where(
                Collection.owner_id == user.id, Collection.is_default.is_(True)
            )
        ).scalar_one()
        assert count == 1
