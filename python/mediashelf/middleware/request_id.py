"""X-Request-ID middleware for request correlation and access logging.

Incoming ids are accepted when they are a UUID (normalized to lowercase) or a
short token of letters, digits, dots, dashes and underscores. Anything else is
replaced by a fresh UUID4. The id is echoed on every response, including
responses produced by the identity middleware, so this middleware must be the
outermost one (added last).
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from mediashelf.logging import bind_request, bind_viewer, get_logger, unbind_request

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return the normalized incoming id, or a new one when it is missing or invalid."""
    if incoming and len(incoming.encode("utf-8")) <= MAX_REQUEST_ID_LENGTH:
        if _UUID_PATTERN.match(incoming):
            return incoming.lower()
        if _TOKEN_PATTERN.match(incoming):
            return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to state, logging context and the response.

    Args:
        app: The ASGI application.
        log_requests: If True, emit one request_completed entry per request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        bind_request(request_id, request.url.path, request.method)

        try:
            response = await call_next(request)

            # Bindings made downstream of call_next do not propagate back here
            viewer = getattr(request.state, "viewer", None)
            if viewer is not None:
                bind_viewer(viewer.user_id)

            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )
            return response
        except Exception:
            logger.exception("request_failed")
            raise
        finally:
            unbind_request()
