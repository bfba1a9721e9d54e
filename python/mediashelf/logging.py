"""structlog setup and request-scoped log context.

Service modules log domain events by name with keyword fields:

    logger = get_logger(__name__)
    logger.info("member_invited", collection_id=collection_id, role=role.value)

Within a request every entry is also stamped with request_id, path and method
(bound by RequestIDMiddleware) and with user_id once the identity middleware
has resolved a viewer. Anonymous requests carry no user_id.
"""

import logging
import sys
from collections.abc import Mapping
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any

import structlog

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "sqlalchemy.pool")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_request_context: ContextVar[Mapping[str, str]] = ContextVar("request_context", default=_EMPTY)


def _merge_request_context(_logger: Any, _method: str, event_dict: dict) -> dict:
    for key, value in _request_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Send structlog and stdlib logging through one stdout handler.

    Args:
        json_format: JSON lines when True, the colored console renderer otherwise.
        level: Root log level name.
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _merge_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request(request_id: str, path: str, method: str) -> None:
    """Start a fresh log context for an incoming request."""
    _request_context.set(
        MappingProxyType({"request_id": request_id, "path": path, "method": method})
    )


def bind_viewer(user_id: str) -> None:
    """Add the resolved viewer to the current request's log context."""
    _request_context.set(MappingProxyType({**_request_context.get(), "user_id": user_id}))


def unbind_request() -> None:
    _request_context.set(_EMPTY)


def current_request_id() -> str | None:
    return _request_context.get().get("request_id")
