"""FastAPI application factory
============================

Builds the ASGI application that serves a registry's document and viewer.

Usage
-----
The factory is the seam for embedding::

    registry = EndpointRegistry()
    register_my_endpoints(registry)
    app = create_app(registry)

Registration-time errors (duplicate parameters, unknown security schemes,
unmapped shapes...) propagate out of :func:`create_app` so a misdeclared API
never starts serving.  ``openapi_docs.main`` exposes a ready-made ``app`` for
the bundled petstore sample.
"""

from __future__ import annotations

from typing import Optional

# third-party
import structlog
from fastapi import FastAPI

# local imports
from openapi_docs.api.errors import add_exception_handlers
from openapi_docs.core.config import Settings, get_settings
from openapi_docs.core.logging import RequestLoggingMiddleware, configure_logging
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.server.routes import build_router
from openapi_docs.server.service import DocumentService

__all__: list[str] = ["create_app"]

logger = structlog.get_logger(__name__)


def create_app(
    registry: EndpointRegistry,
    settings: Optional[Settings] = None,
) -> FastAPI:  # noqa: D401 – factory
    """Build and configure the FastAPI application for *registry*.

    The registry is validated and frozen here; no endpoint can be registered
    after this call returns.
    """

    settings = settings or get_settings()
    configure_logging(settings.debug)

    service = DocumentService(registry, settings)

    # Framework docs are disabled: this app serves someone else's document.
    app_instance = FastAPI(
        title=settings.doc_title,
        version=settings.doc_version,
        debug=settings.debug,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app_instance.state.document_service = service

    # ------------------------------------------------------------------
    # Middleware – logging comes first so later handlers inherit context vars.
    # ------------------------------------------------------------------
    app_instance.add_middleware(RequestLoggingMiddleware)

    # ------------------------------------------------------------------
    # Lifespan events
    # ------------------------------------------------------------------
    @app_instance.on_event("startup")
    async def _on_startup() -> None:  # pragma: no cover – trivial logging
        logger.info(
            "fastapi_startup",
            route_prefix=settings.route_prefix,
            version=settings.version.value,
        )

    @app_instance.on_event("shutdown")
    async def _on_shutdown() -> None:  # pragma: no cover – trivial logging
        logger.info("fastapi_shutdown", documents_built=service.build_count)

    app_instance.include_router(build_router(settings.route_prefix))
    add_exception_handlers(app_instance)

    return app_instance
