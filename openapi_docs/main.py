"""
Petstore document server.

Serves the bundled petstore declarations; the quickest way to look at the
document and the viewer::

    uvicorn openapi_docs.main:app --reload

then open ``http://localhost:8000/api/swagger/ui``.
"""

from __future__ import annotations

from fastapi import FastAPI

from openapi_docs.api.app import create_app
from openapi_docs.core.config import get_settings
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.samples.petstore import petstore_settings, register_petstore

__all__: list[str] = ["app"]


def _create_petstore_app() -> FastAPI:  # noqa: D401 – factory
    settings = petstore_settings(get_settings())
    return create_app(register_petstore(EndpointRegistry()), settings)


app: FastAPI = _create_petstore_app()


if __name__ == "__main__":
    import uvicorn

    _settings = app.state.document_service.settings
    uvicorn.run(
        "openapi_docs.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )
