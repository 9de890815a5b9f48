"""
Petstore sample
===============

Declarations for the classic Swagger petstore ``pet`` resource.  Only the
document side is modelled: there are no handlers behind these endpoints.

Used by ``openapi_docs.main`` and ``scripts/export_document.py`` and as a
realistic fixture in the test suite.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from openapi_docs.core.config import Settings
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.declarations.security import SecurityScheme
from openapi_docs.declarations.types import (
    EndpointDeclaration,
    HttpVerb,
    ParameterDeclaration,
    ParameterLocation,
    RequestBodyDeclaration,
    ResponseDeclaration,
    SecurityRequirement,
)
from openapi_docs.schema.shapes import PrimitiveKind

__all__: list[str] = [
    "PetStatus",
    "Category",
    "Tag",
    "Pet",
    "ApiResponse",
    "PetUrlForm",
    "PetFormData",
    "PETSTORE_SECURITY_SCHEMES",
    "petstore_endpoints",
    "petstore_settings",
    "register_petstore",
]


class PetStatus(str, Enum):
    """Pet status in the store."""

    available = "Available"
    pending = "Pending"
    sold = "Sold"


class Category(BaseModel):
    """Category of a pet."""

    id: Optional[int] = None
    name: Optional[str] = None


class Tag(BaseModel):
    """Free-form label attached to a pet."""

    id: Optional[int] = None
    name: Optional[str] = None


class Pet(BaseModel):
    """A pet in the store."""

    id: int
    name: str
    status: PetStatus
    category: Optional[Category] = None
    photo_urls: List[str] = Field(default_factory=list, alias="photoUrls")
    tags: List[Tag] = Field(default_factory=list)


class ApiResponse(BaseModel):
    """Result of an upload."""

    code: Optional[int] = None
    type: Optional[str] = None
    message: Optional[str] = None


class PetUrlForm(BaseModel):
    """URL-encoded form to update a pet."""

    name: Optional[str] = None
    status: Optional[PetStatus] = None


class PetFormData(BaseModel):
    """Multipart form carrying an image."""

    additional_metadata: Optional[str] = Field(None, alias="additionalMetadata")
    file: bytes


PETSTORE_SECURITY_SCHEMES: Dict[str, SecurityScheme] = {
    "petstore_auth": SecurityScheme.model_validate(
        {
            "type": "oauth2",
            "flows": {
                "implicit": {
                    "authorizationUrl": "http://petstore.swagger.io/oauth/dialog",
                    "scopes": {
                        "write:pets": "modify pets in your account",
                        "read:pets": "read your pets",
                    },
                }
            },
        }
    ),
    "api_key": SecurityScheme.model_validate(
        {"type": "apiKey", "name": "api_key", "in": "header"}
    ),
}

_PET_AUTH = (SecurityRequirement("petstore_auth", ("write:pets", "read:pets")),)
_JSON = "application/json"


def _pet_id(summary: str) -> ParameterDeclaration:
    return ParameterDeclaration(
        name="petId",
        location=ParameterLocation.path,
        shape=PrimitiveKind.int64,
        summary=summary,
        description=summary,
    )


def _no_body(status_code: int, text: str) -> ResponseDeclaration:
    return ResponseDeclaration(status_code, summary=text, description=text)


def _pet_body(status_code: int, shape: object, text: str) -> ResponseDeclaration:
    return ResponseDeclaration(
        status_code, content_type=_JSON, shape=shape, summary=text, description=text
    )


def petstore_endpoints() -> List[EndpointDeclaration]:
    """Return the eight ``pet`` endpoint declarations in document order."""

    return [
        EndpointDeclaration(
            operation_id="updatePet",
            verb=HttpVerb.PUT,
            route="pet",
            summary="Update an existing pet",
            description="This updates an existing pet.",
            tags=("pet",),
            request_body=RequestBodyDeclaration(
                _JSON, Pet, required=True,
                description="Pet object that needs to be updated to the store",
            ),
            responses=(
                _pet_body(200, Pet, "Pet details updated"),
                _no_body(400, "Invalid ID supplied"),
                _no_body(404, "Pet not found"),
                _no_body(405, "Validation exception"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="addPet",
            verb=HttpVerb.POST,
            route="pet",
            summary="Add a new pet to the store",
            description="This add a new pet to the store.",
            tags=("pet",),
            request_body=RequestBodyDeclaration(
                _JSON, Pet, required=True,
                description="Pet object that needs to be added to the store",
            ),
            responses=(
                _pet_body(200, Pet, "New pet details added"),
                _no_body(405, "Invalid input"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="findPetsByStatus",
            verb=HttpVerb.GET,
            route="pet/findByStatus",
            summary="Finds Pets by status",
            description="Multiple status values can be provided with comma separated strings.",
            tags=("pet",),
            parameters=(
                ParameterDeclaration(
                    name="status",
                    location=ParameterLocation.query,
                    shape=List[PetStatus],
                    required=True,
                    explode=True,
                    summary="Pet status value",
                    description="Status values that need to be considered for filter",
                ),
            ),
            responses=(
                _pet_body(200, List[Pet], "successful operation"),
                _no_body(400, "Invalid status value"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="findPetsByTags",
            verb=HttpVerb.GET,
            route="pet/findByTags",
            summary="Finds Pets by tags",
            description="Muliple tags can be provided with comma separated strings.",
            tags=("pet",),
            deprecated=True,
            parameters=(
                ParameterDeclaration(
                    name="tags",
                    location=ParameterLocation.query,
                    shape=List[str],
                    required=True,
                    explode=True,
                    summary="Tags to filter by",
                    description="Tags to filter by",
                ),
            ),
            responses=(
                _pet_body(200, List[Pet], "successful operation"),
                _no_body(400, "Invalid tag value"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="getPetById",
            verb=HttpVerb.GET,
            route="pet/{petId}",
            summary="Find pet by ID",
            description="Returns a single pet.",
            tags=("pet",),
            parameters=(_pet_id("ID of pet to return"),),
            responses=(
                _pet_body(200, Pet, "successful operation"),
                _no_body(400, "Invalid ID supplied"),
                _no_body(404, "Pet not found"),
            ),
            security=(SecurityRequirement("api_key"),),
        ),
        EndpointDeclaration(
            operation_id="updatePetWithForm",
            verb=HttpVerb.POST,
            route="pet/{petId}",
            summary="Updates a pet in the store with form data",
            description="This updates a pet in the store with form data.",
            tags=("pet",),
            parameters=(_pet_id("ID of pet that needs to be updated"),),
            request_body=RequestBodyDeclaration(
                "application/x-www-form-urlencoded", PetUrlForm, required=True,
                description="Pet object that needs to be added to the store",
            ),
            responses=(
                _pet_body(200, Pet, "successful operation"),
                _no_body(405, "Invalid input"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="deletePet",
            verb=HttpVerb.DELETE,
            route="pet/{petId}",
            summary="Deletes a pet",
            description="This deletes a pet.",
            tags=("pet",),
            parameters=(
                ParameterDeclaration(name="api_key", location=ParameterLocation.header),
                _pet_id("Pet id to delete"),
            ),
            responses=(
                _no_body(200, "successful operation"),
                _no_body(400, "Invalid ID supplied"),
                _no_body(404, "Pet not found"),
            ),
            security=_PET_AUTH,
        ),
        EndpointDeclaration(
            operation_id="uploadFile",
            verb=HttpVerb.POST,
            route="pet/{petId}/uploadImage",
            summary="Uploads an image",
            description="This uploads an image.",
            tags=("pet",),
            parameters=(_pet_id("ID of pet to update"),),
            request_body=RequestBodyDeclaration("multipart/form-data", PetFormData),
            responses=(_pet_body(200, ApiResponse, "successful operation"),),
            security=_PET_AUTH,
        ),
    ]


def register_petstore(registry: EndpointRegistry) -> EndpointRegistry:
    """Register every petstore endpoint on *registry* and return it."""

    for decl in petstore_endpoints():
        registry.register(decl)
    return registry


def petstore_settings(settings: Settings) -> Settings:
    """Return a copy of *settings* with the petstore security schemes added.

    Schemes configured through ``OPENAPI__SECURITY_SCHEMES`` win over the
    bundled ones of the same name.
    """

    schemes = {**PETSTORE_SECURITY_SCHEMES, **settings.security_schemes}
    return settings.model_copy(update={"security_schemes": schemes})
