from __future__ import annotations

import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Optional

# structlog must be imported before its typing helpers
import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from structlog.types import Processor

__all__: list[str] = [
    "configure_logging",
    "RequestLoggingMiddleware",
    "request_surface",
]

# Keys every event carries, bound per request by the middleware.
_REQUEST_KEYS: tuple[str, ...] = ("request_id", "path", "surface", "spec_version")

_VIEWER_SUFFIXES: tuple[str, ...] = ("/swagger/ui", "/oauth2-redirect.html")


def _ensure_request_context(
    logger: Any,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Guarantee the per-request keys exist in *event_dict*."""

    for key in _REQUEST_KEYS:
        event_dict.setdefault(key, None)
    return event_dict


_JSON_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    _ensure_request_context,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.format_exc_info,
    structlog.processors.JSONRenderer(),
]


def _configure_stdlib_logging(level: int) -> None:
    """Route the built-in *logging* module (uvicorn, starlette) to stderr."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger.handlers.clear()
    root_logger.addHandler(handler)


_LOGGING_CONFIGURED: bool = False


def configure_logging(debug: bool = False) -> None:
    """Initialise `structlog` for the entire process.

    Idempotent: only the first call has an effect.  Events are rendered as
    one JSON object per line on stdout; uvicorn's own records go to stderr.
    """

    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED:
        return

    level: int = logging.DEBUG if debug else logging.INFO

    _configure_stdlib_logging(level)

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        processors=_JSON_PROCESSORS,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _LOGGING_CONFIGURED = True


def request_surface(path: str) -> str:
    """Classify *path* as ``document``, ``viewer`` or ``other``."""

    if path.endswith(_VIEWER_SUFFIXES):
        return "viewer"
    last = path.rsplit("/", 1)[-1]
    if last.startswith("swagger.") or "/openapi" in path:
        return "document"
    return "other"


def _served_version(request: Request) -> Optional[str]:
    # Read per request: a settings reload may change the served version.
    service = getattr(request.app.state, "document_service", None)
    if service is None:
        return None
    return service.settings.version.value


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each document/viewer request with latency and response size.

    Downstream handlers inherit the bound ``request_id``, ``path``,
    ``method``, ``surface`` and ``spec_version`` context variables.  The
    correlation ID is taken from ``X-Request-ID`` when present and echoed back.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start: float = time.perf_counter()
        request_id: str = request.headers.get("x-request-id") or uuid.uuid4().hex

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            surface=request_surface(request.url.path),
            spec_version=_served_version(request),
        )

        response: Response | None = None
        try:
            response = await call_next(request)
        finally:
            duration_ms: float = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            logger = structlog.get_logger("http")
            log = logger.error if status_code >= 500 else logger.info
            log(
                "request_completed",
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                response_bytes=(
                    response.headers.get("content-length") if response is not None else None
                ),
            )
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response
