"""Gateway-asserted identity.

A trusted gateway in front of the service authenticates users with the
identity provider and forwards who they are:

    X-User-Id       provider subject id; absent for anonymous callers
    X-User-Email    optional profile hint
    X-User-Name     optional profile hint

In staging/prod the gateway also sends X-Mediashelf-Internal with a shared
secret, so that only the gateway can assert identities.

IdentityMiddleware leaves request.state.viewer as a Viewer or None. Routes pick
it up with ViewerDep (401 for anonymous callers) or OptionalViewerDep.
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from mediashelf.errors import ApiError, ApiErrorCode
from mediashelf.logging import bind_viewer, get_logger
from mediashelf.responses import error_response

logger = get_logger(__name__)

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
USER_NAME_HEADER = "x-user-name"
INTERNAL_HEADER = "x-mediashelf-internal"

# users.id column width
MAX_USER_ID_LENGTH = 255

# Served without the internal header and without identity
PUBLIC_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


@dataclass(frozen=True)
class Viewer:
    """The caller, as asserted by the gateway."""

    user_id: str
    email: str | None = None
    name: str | None = None

    @classmethod
    def from_headers(cls, request: Request) -> "Viewer | None":
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return None
        return cls(
            user_id=user_id,
            email=request.headers.get(USER_EMAIL_HEADER) or None,
            name=request.headers.get(USER_NAME_HEADER) or None,
        )


def _reject(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


class IdentityMiddleware(BaseHTTPMiddleware):
    """Resolve request.state.viewer and mirror identified users into storage.

    Args:
        app: The ASGI application.
        requires_internal_header: Reject requests without the gateway secret.
        internal_secret: Expected X-Mediashelf-Internal value.
        bootstrap_callback: Called with each identified Viewer before the route
            runs; it makes sure the user row exists.
    """

    def __init__(
        self,
        app: ASGIApp,
        requires_internal_header: bool = False,
        internal_secret: str | None = None,
        bootstrap_callback: Callable[[Viewer], None] | None = None,
    ):
        super().__init__(app)
        self.requires_internal_header = requires_internal_header
        self.internal_secret = internal_secret
        self.bootstrap_callback = bootstrap_callback

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.viewer = None
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        if self.requires_internal_header:
            rejection = self._check_internal_secret(request)
            if rejection is not None:
                return rejection

        viewer = Viewer.from_headers(request)
        if viewer is None:
            return await call_next(request)

        if len(viewer.user_id) > MAX_USER_ID_LENGTH:
            logger.warning("identity_rejected", reason="user_id_too_long", path=request.url.path)
            return _reject(401, ApiErrorCode.E_UNAUTHENTICATED, "Invalid user identity")

        if self.bootstrap_callback is not None:
            try:
                self.bootstrap_callback(viewer)
            except Exception:
                logger.exception("user_bootstrap_failed", user_id=viewer.user_id)
                return _reject(500, ApiErrorCode.E_INTERNAL, "Internal server error")

        request.state.viewer = viewer
        bind_viewer(viewer.user_id)
        return await call_next(request)

    def _check_internal_secret(self, request: Request) -> JSONResponse | None:
        """Return a rejection unless X-Mediashelf-Internal matches, compared in constant time."""
        presented = request.headers.get(INTERNAL_HEADER)
        if presented is None:
            reason = "internal_header_missing"
        elif not self.internal_secret:
            # Settings validation refuses to start without a secret in staging/prod
            logger.error("internal_secret_not_configured")
            return _reject(500, ApiErrorCode.E_INTERNAL, "Internal server error")
        elif hmac.compare_digest(presented.encode(), self.internal_secret.encode()):
            return None
        else:
            reason = "internal_header_mismatch"

        logger.warning("identity_rejected", reason=reason, path=request.url.path)
        return _reject(403, ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required")


def get_optional_viewer(request: Request) -> Viewer | None:
    return getattr(request.state, "viewer", None)


def get_viewer(request: Request) -> Viewer:
    """Dependency for routes that need an identified caller.

    Raises:
        ApiError: E_UNAUTHENTICATED for anonymous callers.
    """
    viewer = get_optional_viewer(request)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer


ViewerDep = Annotated[Viewer, Depends(get_viewer)]
OptionalViewerDep = Annotated[Viewer | None, Depends(get_optional_viewer)]
