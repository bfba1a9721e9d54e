"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

import functools
from collections.abc import Callable
from enum import Enum
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from mediashelf.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"
    E_INTERNAL_ONLY = "E_INTERNAL_ONLY"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_COLLECTION_NOT_FOUND = "E_COLLECTION_NOT_FOUND"
    E_MEDIA_NOT_FOUND = "E_MEDIA_NOT_FOUND"
    E_COLLECTION_MEDIA_NOT_FOUND = "E_COLLECTION_MEDIA_NOT_FOUND"
    E_MEMBER_NOT_FOUND = "E_MEMBER_NOT_FOUND"
    E_INVITATION_NOT_FOUND = "E_INVITATION_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_EMPTY_UPDATE = "E_EMPTY_UPDATE"
    E_INVALID_CURSOR = "E_INVALID_CURSOR"
    E_INVALID_SORT = "E_INVALID_SORT"

    # Conflict errors (reported as 400)
    E_MEDIA_ALREADY_IN_COLLECTION = "E_MEDIA_ALREADY_IN_COLLECTION"
    E_MEMBER_ALREADY_EXISTS = "E_MEMBER_ALREADY_EXISTS"
    E_INVITATION_ALREADY_ACCEPTED = "E_INVITATION_ALREADY_ACCEPTED"
    E_USERNAME_TAKEN = "E_USERNAME_TAKEN"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_INTERNAL_ONLY: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_COLLECTION_NOT_FOUND: 404,
    ApiErrorCode.E_MEDIA_NOT_FOUND: 404,
    ApiErrorCode.E_COLLECTION_MEDIA_NOT_FOUND: 404,
    ApiErrorCode.E_MEMBER_NOT_FOUND: 404,
    ApiErrorCode.E_INVITATION_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_EMPTY_UPDATE: 400,
    ApiErrorCode.E_INVALID_CURSOR: 400,
    ApiErrorCode.E_INVALID_SORT: 400,
    ApiErrorCode.E_MEDIA_ALREADY_IN_COLLECTION: 400,
    ApiErrorCode.E_MEMBER_ALREADY_EXISTS: 400,
    ApiErrorCode.E_INVITATION_ALREADY_ACCEPTED: 400,
    ApiErrorCode.E_USERNAME_TAKEN: 400,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found (or not visible to the viewer)."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Uniqueness or state-transition conflict."""

    def __init__(self, code: ApiErrorCode, message: str = "Conflict"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class InternalError(ApiError):
    """Unexpected failure. The message never carries the underlying cause."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(ApiErrorCode.E_INTERNAL, message)


def reclassify_storage_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Wrap unexpected storage failures of a service function in InternalError.

    ApiErrors raised inside the function pass through unchanged. Any other
    SQLAlchemyError is logged with its traceback and re-raised as InternalError,
    keeping the original as __cause__.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except ApiError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("storage_error", operation=func.__name__)
            raise InternalError() from exc

    return wrapper
