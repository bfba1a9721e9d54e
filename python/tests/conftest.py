"""Pytest configuration and fixtures for mediashelf tests.

Test isolation strategy:
- Every test gets its own database: in-memory SQLite by default, or the
  database named by TEST_DATABASE_URL (tables are dropped afterwards)
- Service tests use db_session, a session inside a savepoint that is rolled back
- HTTP tests use client; requests commit through the app's session factory
  and the identity middleware mirrors each X-User-Id into the users table
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Settings need a DATABASE_URL before anything reads them
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIASHELF_ENV", "test")
os.environ.setdefault("LOG_JSON", "false")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from mediashelf.app import add_request_id_middleware, create_app
from mediashelf.config import clear_settings_cache
from mediashelf.db.engine import create_db_engine, init_schema
from mediashelf.db.models import Base
from mediashelf.db.session import create_session_factory, set_session_factory
from tests.helpers import create_test_user_id
from tests.utils.db import isolated_session


def get_test_database_url() -> str:
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a database engine with a fresh schema for one test."""
    database_url = get_test_database_url()
    engine = create_db_engine(database_url)
    init_schema(engine)
    yield engine
    if not database_url.startswith("sqlite"):
        Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session with savepoint isolation.

    Service commits release savepoints only; everything is rolled back after
    the test. Do not combine with the client fixture in one test.
    """
    with isolated_session(engine) as session:
        yield session


@pytest.fixture
def session_factory(engine: Engine) -> Generator[sessionmaker[Session], None, None]:
    """Bind the application's session factory to the test engine."""
    factory = create_session_factory(engine)
    set_session_factory(factory)
    yield factory
    set_session_factory(None)


@pytest.fixture
def app(session_factory: sessionmaker[Session]) -> FastAPI:
    """Provide the app with identity and request-id middleware wired to the test engine."""
    app = create_app(session_factory=session_factory)
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client. Use auth_headers() to act as a user."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_user_id() -> str:
    """Generate a random id for a test user."""
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
