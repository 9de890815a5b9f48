from __future__ import annotations

import pytest

from openapi_docs.core.config import OpenApiVersion, Settings
from openapi_docs.core.exceptions import RegistryFrozen, UnknownSecurityScheme
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.declarations.types import EndpointDeclaration, HttpVerb, Visibility
from openapi_docs.document.cache import SnapshotState
from openapi_docs.samples.petstore import register_petstore
from openapi_docs.server.service import DocumentService

HOST = "http://localhost:8000"


def test_construction_validates_and_freezes(settings) -> None:
    registry = register_petstore(EndpointRegistry())
    service = DocumentService(registry, settings)

    assert registry.frozen is True
    assert service.build_count == 0
    with pytest.raises(RegistryFrozen):
        registry.register(
            EndpointDeclaration(operation_id="late", verb=HttpVerb.GET, route="late")
        )


def test_construction_fails_for_invalid_registry() -> None:
    registry = register_petstore(EndpointRegistry())

    with pytest.raises(UnknownSecurityScheme):
        DocumentService(registry, Settings())
    assert registry.frozen is False


def test_document_is_cached_per_host(settings) -> None:
    service = DocumentService(register_petstore(EndpointRegistry()), settings)

    first = service.document(HOST)
    assert service.document(HOST) is first
    assert service.snapshot_state(HOST) is SnapshotState.served
    assert first.servers == ("http://localhost:8000/api",)

    other = service.document("https://docs.example.com")
    assert other.servers == ("https://docs.example.com/api",)
    assert service.build_count == 2


def test_host_ignored_when_not_listed(make_settings) -> None:
    settings = make_settings(exclude_requesting_host=True, host_names="pets.example.com")
    service = DocumentService(register_petstore(EndpointRegistry()), settings)

    a = service.document(HOST)
    b = service.document("https://elsewhere.example.com")

    assert a is b
    assert a.servers == ("https://pets.example.com/api",)
    assert service.build_count == 1


def test_reload_settings_rebuilds(make_settings) -> None:
    service = DocumentService(register_petstore(EndpointRegistry()), make_settings())
    v2 = service.document(HOST)

    service.reload_settings(make_settings(version="v3"))

    assert service.settings.version is OpenApiVersion.v3
    v3 = service.document(HOST)
    assert v3.version is OpenApiVersion.v3
    assert v3.generation == 1
    assert v2.version is OpenApiVersion.v2


def test_reload_rejects_invalid_settings(settings) -> None:
    service = DocumentService(register_petstore(EndpointRegistry()), settings)

    with pytest.raises(UnknownSecurityScheme):
        service.reload_settings(Settings())
    assert service.settings is settings


def test_internal_document_ignores_visibility(make_settings) -> None:
    registry = EndpointRegistry()
    registry.register(EndpointDeclaration(operation_id="a", verb=HttpVerb.GET, route="a"))
    registry.register(
        EndpointDeclaration(
            operation_id="b",
            verb=HttpVerb.GET,
            route="b",
            visibility=Visibility.internal,
        )
    )
    service = DocumentService(registry, make_settings(minimum_visibility="important"))

    assert service.document().operation_count == 1
    assert service.internal_document().operation_count == 2
    assert service.build_count == 1
