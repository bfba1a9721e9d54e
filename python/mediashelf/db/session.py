"""Sessions and transaction boundaries.

Routes get one session per request through get_db(). Work outside a request
(the identity bootstrap, scripts) opens its own with session_scope(). Service
functions mark their write units with transaction(db).

Sessions never expire attributes on commit, so a service can build its
response model from ORM objects after the transaction has ended.
"""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from mediashelf.db.engine import get_engine

_session_factory: sessionmaker[Session] | None = None


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


def get_session_factory() -> sessionmaker[Session]:
    """Return the process-wide factory, creating it on first use."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory()
    return _session_factory


def set_session_factory(factory: sessionmaker[Session] | None) -> None:
    """Point the process at another factory. None drops it so it is rebuilt lazily."""
    global _session_factory
    _session_factory = factory


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed after the response."""
    with session_scope() as db:
        yield db


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Open a session from factory (default: the process-wide one) and close it after."""
    db = (factory or get_session_factory())()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the enclosed unit of work, or roll all of it back and re-raise.

    Usage:
        with transaction(db):
            db.add(collection)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
