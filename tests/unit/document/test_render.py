from __future__ import annotations

import pytest

from openapi_docs.core.config import OpenApiVersion
from openapi_docs.core.exceptions import UnsupportedShape
from openapi_docs.declarations.security import SecurityScheme
from openapi_docs.declarations.types import (
    ParameterDeclaration,
    ParameterLocation,
    ResponseDeclaration,
)
from openapi_docs.document.render import DocumentFormat, ShapeRenderer, dump
from openapi_docs.schema.shapes import (
    ArrayShape,
    Primitive,
    PrimitiveKind,
    SchemaComponentTable,
)


@pytest.fixture
def v2() -> ShapeRenderer:
    return ShapeRenderer(OpenApiVersion.v2, SchemaComponentTable())


@pytest.fixture
def v3() -> ShapeRenderer:
    return ShapeRenderer(OpenApiVersion.v3, SchemaComponentTable())


def test_response_description_fallbacks(v2: ShapeRenderer) -> None:
    assert v2.response(ResponseDeclaration(404)) == {"description": "Not Found"}
    assert v2.response(ResponseDeclaration(299)) == {"description": "299"}
    assert v2.response(ResponseDeclaration(400, summary="Bad id")) == {
        "description": "Bad id",
        "x-ms-summary": "Bad id",
    }


def test_v3_response_defaults_to_json_content(v3: ShapeRenderer) -> None:
    rendered = v3.response(ResponseDeclaration(200, shape=Primitive(PrimitiveKind.string)))

    assert rendered["content"] == {"application/json": {"schema": {"type": "string"}}}


def test_non_exploded_array_parameter(v2: ShapeRenderer, v3: ShapeRenderer) -> None:
    param = ParameterDeclaration(
        "ids", ParameterLocation.query, ArrayShape(Primitive(PrimitiveKind.int32))
    )

    assert "collectionFormat" not in v2.parameter(param)
    assert v3.parameter(param) == {
        "name": "ids",
        "in": "query",
        "required": False,
        "style": "form",
        "explode": False,
        "schema": {"type": "array", "items": {"type": "integer", "format": "int32"}},
    }


@pytest.mark.parametrize(
    ("flow", "v2_name", "url_key"),
    [
        ("implicit", "implicit", "authorizationUrl"),
        ("password", "password", "tokenUrl"),
        ("clientCredentials", "application", "tokenUrl"),
        ("authorizationCode", "accessCode", "authorizationUrl"),
    ],
)
def test_v2_oauth_flow_names(v2: ShapeRenderer, flow: str, v2_name: str, url_key: str) -> None:
    scheme = SecurityScheme.model_validate(
        {
            "type": "oauth2",
            "flows": {
                flow: {
                    "authorizationUrl": "https://auth.example.com/authorize",
                    "tokenUrl": "https://auth.example.com/token",
                    "scopes": {"read": "Read access"},
                }
            },
        }
    )

    rendered = v2.security_scheme(scheme)

    assert rendered["flow"] == v2_name
    assert url_key in rendered
    assert rendered["scopes"] == {"read": "Read access"}


def test_v2_cannot_express_open_id_connect(v2: ShapeRenderer, v3: ShapeRenderer) -> None:
    scheme = SecurityScheme.model_validate(
        {"type": "openIdConnect", "openIdConnectUrl": "https://id.example.com/.well-known"}
    )

    assert v2.security_scheme(scheme) is None
    assert v3.security_scheme(scheme) == {
        "type": "openIdConnect",
        "openIdConnectUrl": "https://id.example.com/.well-known",
    }


def test_v2_basic_auth(v2: ShapeRenderer) -> None:
    scheme = SecurityScheme.model_validate(
        {"type": "http", "scheme": "Basic", "description": "Username and password"}
    )

    assert v2.security_scheme(scheme) == {
        "type": "basic",
        "description": "Username and password",
    }


def test_dump_preserves_key_order() -> None:
    document = {"swagger": "2.0", "info": {"title": "Pets", "version": "1"}, "paths": {}}

    assert dump(document, DocumentFormat.yaml).decode("utf-8").splitlines()[:2] == [
        "swagger: '2.0'",
        "info:",
    ]
    assert dump(document, DocumentFormat.json).decode("utf-8").splitlines()[1] == (
        '  "swagger": "2.0",'
    )
    assert DocumentFormat.json.media_type == "application/json"
    assert DocumentFormat.yaml.media_type == "application/yaml"


def test_cookie_parameter_only_in_v3(v2: ShapeRenderer, v3: ShapeRenderer) -> None:
    param = ParameterDeclaration(
        "session", ParameterLocation.cookie, Primitive(PrimitiveKind.string)
    )

    assert v3.parameter(param) == {
        "name": "session",
        "in": "cookie",
        "required": False,
        "schema": {"type": "string"},
    }
    with pytest.raises(UnsupportedShape, match="cookie"):
        v2.parameter(param)
