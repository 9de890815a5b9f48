from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response

from openapi_docs.core.config import Settings
from openapi_docs.core.exceptions import DocumentHidden
from openapi_docs.document.render import DocumentFormat
from openapi_docs.server.access import (
    check_document_access,
    check_viewer_access,
    presented_api_key,
    requesting_host,
)
from openapi_docs.server.service import DocumentService
from openapi_docs.server.viewer import render_oauth2_redirect, render_swagger_ui

__all__: list[str] = [
    "build_router",
    "get_document_service",
]

logger = structlog.get_logger(__name__)

_YAML_MEDIA_TYPES = ("application/yaml", "application/x-yaml", "text/yaml", "text/vnd.yaml")


def get_document_service(request: Request) -> DocumentService:
    """Return the service the application factory stored on ``app.state``."""
    return request.app.state.document_service


SERVICE_DEP: DocumentService = Depends(get_document_service)


def _parse_format(extension: str) -> DocumentFormat:
    ext = extension.lower()
    if ext == "yml":
        ext = "yaml"
    try:
        return DocumentFormat(ext)
    except ValueError:
        raise DocumentHidden(f"Unknown document extension '{extension}'") from None


def _negotiate_format(accept: Optional[str]) -> DocumentFormat:
    if accept and any(media in accept.lower() for media in _YAML_MEDIA_TYPES):
        return DocumentFormat.yaml
    return DocumentFormat.json


def _document_response(
    request: Request,
    service: DocumentService,
    settings: Settings,
    fmt: DocumentFormat,
) -> Response:
    check_document_access(request, settings)
    snapshot = service.document(requesting_host(request))
    return Response(content=snapshot.body(fmt), media_type=fmt.media_type)


def build_router(route_prefix: str) -> APIRouter:
    """Create the document/viewer routes under ``/{route_prefix}``.

    Handlers are plain functions: FastAPI runs them in its threadpool, where
    waiting for an in-flight build does not block the event loop.
    """

    prefix = f"/{route_prefix}" if route_prefix else ""
    router = APIRouter(prefix=prefix, tags=["OpenAPI"], include_in_schema=False)

    @router.get("/swagger.{extension}")
    def swagger_document(
        extension: str,
        request: Request,
        service: DocumentService = SERVICE_DEP,
    ) -> Response:
        """Return the document in the configured specification version."""
        settings = service.settings
        return _document_response(request, service, settings, _parse_format(extension))

    @router.get("/openapi/{version}.{extension}")
    def versioned_document(
        version: str,
        extension: str,
        request: Request,
        service: DocumentService = SERVICE_DEP,
    ) -> Response:
        """Return the document only if *version* is the configured one."""
        settings = service.settings
        fmt = _parse_format(extension)
        if version.lower() != settings.version.value:
            check_document_access(request, settings)
            logger.debug("document_version_not_served", requested=version)
            raise DocumentHidden(f"Version '{version}' is not served")
        return _document_response(request, service, settings, fmt)

    @router.get("/openapi")
    def negotiated_document(
        request: Request,
        service: DocumentService = SERVICE_DEP,
    ) -> Response:
        """Return the document as JSON or YAML depending on ``Accept``."""
        settings = service.settings
        fmt = _negotiate_format(request.headers.get("accept"))
        return _document_response(request, service, settings, fmt)

    @router.get("/swagger/ui", response_class=HTMLResponse)
    def swagger_ui(
        request: Request,
        service: DocumentService = SERVICE_DEP,
    ) -> HTMLResponse:
        """Swagger UI page rendering the served document."""
        settings = service.settings
        check_viewer_access(request, settings)
        key_name = key_value = None
        if settings.api_key is not None:
            key_name = settings.effective_api_key_name
            key_value = presented_api_key(request, settings)
        html = render_swagger_ui(
            title=settings.doc_title,
            document_url=f"{prefix}/swagger.json",
            redirect_url=f"{requesting_host(request)}{prefix}/oauth2-redirect.html",
            key_name=key_name,
            key_value=key_value,
            key_transport=settings.api_key_location,
        )
        return HTMLResponse(html)

    @router.get("/oauth2-redirect.html", response_class=HTMLResponse)
    def oauth2_redirect(
        request: Request,
        service: DocumentService = SERVICE_DEP,
    ) -> HTMLResponse:
        check_viewer_access(request, service.settings)
        return HTMLResponse(render_oauth2_redirect())

    return router

