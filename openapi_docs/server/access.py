"""
Access gates for the document and the viewer.

Gates are evaluated in a fixed order and the first failing gate decides the
response:

1. hidden by configuration -> 404 (credentials are not even looked at);
2. API key configured -> the request must carry the matching key (401);
3. ``force_https`` -> plaintext requests are rejected (403).

Per-endpoint visibility filtering is a separate concern handled by the
assembler; both apply independently.
"""

from __future__ import annotations

import secrets
from http import HTTPStatus
from typing import Optional

import structlog
from fastapi import Request

from openapi_docs.core.config import ApiKeyTransport, AuthLevel, Settings
from openapi_docs.core.exceptions import AccessDenied, DocumentHidden

__all__: list[str] = [
    "request_scheme",
    "requesting_host",
    "presented_api_key",
    "check_document_access",
    "check_viewer_access",
]

logger = structlog.get_logger(__name__)


def request_scheme(request: Request) -> str:
    """Scheme the client used, honouring ``X-Forwarded-Proto`` from proxies."""
    forwarded = request.headers.get("x-forwarded-proto")
    if forwarded:
        return forwarded.split(",")[0].strip().lower()
    return request.url.scheme


def requesting_host(request: Request) -> str:
    """Return ``scheme://host[:port]`` of the incoming request."""
    return f"{request_scheme(request)}://{request.url.netloc}"


def presented_api_key(request: Request, settings: Settings) -> Optional[str]:
    """Return the key the request carries in the configured location."""
    name = settings.effective_api_key_name
    if settings.api_key_location is ApiKeyTransport.query:
        return request.query_params.get(name)
    return request.headers.get(name)


def _check_api_key(request: Request, settings: Settings, surface: str) -> None:
    if settings.api_key is None:
        return
    presented = presented_api_key(request, settings)
    if presented is None or not secrets.compare_digest(
        presented.encode("utf-8"), settings.api_key.encode("utf-8")
    ):
        logger.warning(
            "document_access_denied",
            surface=surface,
            reason="api_key",
            has_key=presented is not None,
        )
        raise AccessDenied("Invalid or missing API key", HTTPStatus.UNAUTHORIZED)


def _check_transport(request: Request, settings: Settings, surface: str) -> None:
    if settings.force_https and request_scheme(request) != "https":
        logger.warning("document_access_denied", surface=surface, reason="https_required")
        raise AccessDenied("HTTPS is required", HTTPStatus.FORBIDDEN)


def check_document_access(request: Request, settings: Settings) -> None:
    """Raise unless *request* may read the document."""
    if settings.hide_document:
        raise DocumentHidden("Document is hidden")
    _check_api_key(request, settings, "document")
    _check_transport(request, settings, "document")


def check_viewer_access(request: Request, settings: Settings) -> None:
    """Raise unless *request* may open the Swagger UI page.

    The viewer has its own ``hide_swagger_ui`` switch; with the document hidden
    there is nothing to view, so ``hide_document`` hides it too.  The key is
    only required when the UI auth level is not anonymous.
    """
    if settings.hide_document or settings.hide_swagger_ui:
        raise DocumentHidden("Viewer is hidden")
    if settings.auth_level.ui is not AuthLevel.anonymous:
        _check_api_key(request, settings, "viewer")
    _check_transport(request, settings, "viewer")
