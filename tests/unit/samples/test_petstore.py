from __future__ import annotations

from openapi_docs.core.config import Settings
from openapi_docs.declarations.types import HttpVerb
from openapi_docs.samples.petstore import (
    PETSTORE_SECURITY_SCHEMES,
    petstore_endpoints,
    petstore_settings,
)


def test_petstore_declares_eight_pet_operations() -> None:
    endpoints = petstore_endpoints()

    assert [e.operation_id for e in endpoints] == [
        "updatePet",
        "addPet",
        "findPetsByStatus",
        "findPetsByTags",
        "getPetById",
        "updatePetWithForm",
        "deletePet",
        "uploadFile",
    ]
    assert {e.tags for e in endpoints} == {("pet",)}
    assert endpoints[4].verb is HttpVerb.GET
    assert endpoints[4].route_parameters == ("petId",)


def test_petstore_settings_keeps_configured_schemes() -> None:
    custom = {"api_key": {"type": "apiKey", "name": "x-pet-key", "in": "query"}}

    settings = petstore_settings(Settings(security_schemes=custom))

    assert list(settings.security_schemes) == ["petstore_auth", "api_key"]
    assert settings.security_schemes["api_key"].name == "x-pet-key"
    assert settings.security_schemes["petstore_auth"] is PETSTORE_SECURITY_SCHEMES["petstore_auth"]
