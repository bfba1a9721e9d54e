"""Application factory for the mediashelf API.

Identity comes from a trusted gateway as X-User-Id (plus X-Mediashelf-Internal
in staging/prod). Requests without X-User-Id are anonymous: read routes serve
them public data, mutation routes answer 401.

Middleware runs in reverse order of registration. RequestIDMiddleware must be
added last, after create_app(), so that it wraps everything and even identity
failures carry X-Request-ID:

    RequestIDMiddleware -> IdentityMiddleware -> malformed-JSON check -> route
"""

from collections.abc import Callable

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from mediashelf.api.routes import create_api_router
from mediashelf.auth.middleware import IdentityMiddleware, Viewer
from mediashelf.config import get_settings
from mediashelf.db.session import session_scope
from mediashelf.logging import configure_logging, get_logger
from mediashelf.middleware.request_id import RequestIDMiddleware
from mediashelf.responses import register_error_handlers
from mediashelf.services.users import ensure_user

logger = get_logger(__name__)


def create_bootstrap_callback(
    session_factory: sessionmaker[Session] | None = None,
) -> Callable[[Viewer], None]:
    """Mirror the viewer's user row on each identified request, in its own session."""

    def bootstrap(viewer: Viewer) -> None:
        with session_scope(session_factory) as db:
            ensure_user(db, viewer.user_id, email=viewer.email, name=viewer.name)

    return bootstrap


def create_app(
    skip_identity_middleware: bool = False,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Build the API: logging, error envelopes, routes and identity resolution.

    Args:
        skip_identity_middleware: Leave IdentityMiddleware out so a test can add
            its own configuration.
        session_factory: Factory the user bootstrap opens sessions from.
            Defaults to the process-wide factory.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)

    app = FastAPI(
        title="Mediashelf API",
        description="Shareable media collections: watch-lists, reading lists and their members",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_error_handlers(app)

    app.include_router(create_api_router())

    if not skip_identity_middleware:
        app.add_middleware(
            IdentityMiddleware,
            requires_internal_header=settings.requires_internal_header,
            internal_secret=settings.mediashelf_internal_secret,
            bootstrap_callback=create_bootstrap_callback(session_factory),
        )

        logger.info(
            "identity_middleware_enabled",
            env=settings.mediashelf_env.value,
            internal_header_required=settings.requires_internal_header,
        )

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Wrap the app in RequestIDMiddleware. Call after every other middleware."""
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
