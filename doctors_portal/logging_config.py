"""Structured logging configuration.

Every portal event is a JSON line on stdout. A request id is bound through
contextvars so every log line emitted while serving a request carries it.
"""
import logging
import sys
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def setup_structured_logging(log_level: str = "INFO"):
    """
    Route structlog and stdlib records to stdout as one JSON object per line.

    Called from the app lifespan, so uvicorn and SQLAlchemy warnings share the
    same stream as the portal events.

    Raises:
        ValueError: If ``log_level`` is not a stdlib level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{log_level}'")

    structlog.configure(
        processors=[*SHARED_PROCESSORS, structlog.processors.JSONRenderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; events are snake_case names with keyword context."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Short id echoed in X-Request-ID and bound to every log line of a request."""
    return f"req-{uuid.uuid4().hex[:12]}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to the log context and the response headers."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
