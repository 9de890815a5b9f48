"""openapi_docs: build and serve OpenAPI documents from endpoint declarations.

The ASGI application factory lives in :pymod:`openapi_docs.api.app`; the
petstore demo app in :pymod:`openapi_docs.main`.  Nothing is imported here so
that importing a submodule never builds an application.
"""
