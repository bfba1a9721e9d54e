"""Response envelopes and the exception handlers that produce error envelopes.

Envelopes:
- single item: {"data": ...}
- list:        {"data": [...], "page", "pageSize", "total", "pages", "links", "cursor"}
- error:       {"error": {"code": "E_...", "message": "...", "request_id": "..."}}

Every failure leaves the service as an error envelope. Domain errors keep their
code and status, framework errors are mapped onto the same codes, and anything
unexpected becomes E_INTERNAL with the detail kept in the server log.
"""

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediashelf.errors import ApiError, ApiErrorCode
from mediashelf.logging import current_request_id, get_logger

logger = get_logger(__name__)

# Framework-raised statuses (unknown route, wrong method, ...) onto our codes
HTTP_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    422: ApiErrorCode.E_INVALID_REQUEST,
}

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build an error envelope. request_id defaults to the current request's id."""
    error = {"code": code.value, "message": message}
    request_id = request_id or current_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def _error_json(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _error_json(exc.status_code, exc.code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return _error_json(exc.status_code, code, str(exc.detail) if exc.detail else "Request failed")


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report the first invalid field of a body or query string as a 400."""
    message = "Invalid request"
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if location:
            message = f"Invalid request: {location}: {first.get('msg', 'invalid value')}"
    return _error_json(400, ApiErrorCode.E_INVALID_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return _error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")


async def reject_malformed_json(request: Request, call_next):
    """Answer 400 for JSON bodies that do not parse, before routing sees them."""
    if request.method in _BODY_METHODS and "application/json" in request.headers.get(
        "content-type", ""
    ):
        body = await request.body()
        if body:
            try:
                json.loads(body)
            except json.JSONDecodeError:
                return _error_json(400, ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body")
    return await call_next(request)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.middleware("http")(reject_malformed_json)
