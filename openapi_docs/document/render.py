"""
Document rendering helpers.

Translate data shapes, parameters and security schemes into the dictionaries
of an OpenAPI 2.0 (``swagger: "2.0"``) or OpenAPI 3.0.1 document, and
serialize finished documents.  Every function builds its output dictionaries
in a fixed key order so that the same input always serializes to the same
bytes.
"""

from __future__ import annotations

import json
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Final, List, Optional

import yaml

from openapi_docs.core.config import OpenApiVersion
from openapi_docs.core.exceptions import UnsupportedShape
from openapi_docs.declarations.security import (
    OAuthFlow,
    OAuthFlowKind,
    SecurityScheme,
    SecuritySchemeKind,
)
from openapi_docs.declarations.types import (
    ParameterLocation,
    ParameterDeclaration,
    RequestBodyDeclaration,
    ResponseDeclaration,
)
from openapi_docs.schema.shapes import (
    ArrayShape,
    ComponentDefinition,
    DataShape,
    EnumRef,
    ObjectRef,
    ObjectShape,
    Primitive,
    PrimitiveKind,
    SchemaComponentTable,
)

__all__: list[str] = [
    "DocumentFormat",
    "FORM_CONTENT_TYPES",
    "ShapeRenderer",
    "dump",
]

FORM_CONTENT_TYPES: Final[frozenset[str]] = frozenset(
    {"application/x-www-form-urlencoded", "multipart/form-data"}
)

# OpenAPI 2.0 only knows a single flow per scheme, under different names.
_V2_FLOW_NAMES: Final[Dict[OAuthFlowKind, str]] = {
    OAuthFlowKind.implicit: "implicit",
    OAuthFlowKind.password: "password",
    OAuthFlowKind.client_credentials: "application",
    OAuthFlowKind.authorization_code: "accessCode",
}


class DocumentFormat(str, Enum):
    json = "json"
    yaml = "yaml"

    @property
    def media_type(self) -> str:
        return "application/json" if self is DocumentFormat.json else "application/yaml"


class ShapeRenderer:
    """Render declarations for one specification version.

    Args:
        version: Target specification version.
        components: Table used to look into referenced objects (form bodies
            in 2.0 are flattened into one parameter per field).
    """

    def __init__(self, version: OpenApiVersion, components: SchemaComponentTable) -> None:
        self.version = version
        self.components = components
        self.ref_prefix = (
            "#/definitions/" if version is OpenApiVersion.v2 else "#/components/schemas/"
        )

    # ------------------------------------------------------------------
    # Schemas
    # ------------------------------------------------------------------
    def schema(self, shape: DataShape) -> Dict[str, Any]:
        if isinstance(shape, Primitive):
            return _primitive(shape.kind)
        if isinstance(shape, (ObjectRef, EnumRef)):
            return {"$ref": f"{self.ref_prefix}{shape.name}"}
        if isinstance(shape, ArrayShape):
            return {"type": "array", "items": self.schema(shape.items)}
        if isinstance(shape, ObjectShape):
            return self._object(shape)
        raise UnsupportedShape(f"Cannot render {shape!r}")

    def component(self, definition: ComponentDefinition) -> Dict[str, Any]:
        if isinstance(definition, EnumRef):
            return {"type": "string", "enum": list(definition.values)}
        return self._object(definition)

    def _object(self, shape: ObjectShape) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": "object"}
        if shape.description:
            out["description"] = shape.description
        if shape.required:
            out["required"] = list(shape.required)
        if shape.fields:
            out["properties"] = {
                name: self.schema(field_shape) for name, field_shape in shape.fields
            }
        if shape.additional is not None:
            out["additionalProperties"] = self.schema(shape.additional)
        return out

    def _inline(self, shape: DataShape) -> Dict[str, Any]:
        """2.0 non-body parameters cannot use ``$ref``; inline enums instead."""
        if isinstance(shape, Primitive):
            return _primitive(shape.kind)
        if isinstance(shape, EnumRef):
            return {"type": "string", "enum": list(shape.values)}
        if isinstance(shape, ArrayShape):
            return {"type": "array", "items": self._inline(shape.items)}
        raise UnsupportedShape(
            "OpenAPI 2.0 non-body parameters must be primitives, enums or arrays"
        )

    # ------------------------------------------------------------------
    # Parameters and bodies
    # ------------------------------------------------------------------
    def parameter(self, param: ParameterDeclaration) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": param.name, "in": param.location.value}
        if param.description:
            out["description"] = param.description
        out["required"] = param.required
        is_array = isinstance(param.shape, ArrayShape)

        if self.version is OpenApiVersion.v2:
            if param.location is ParameterLocation.cookie:
                raise UnsupportedShape(
                    f"Parameter '{param.name}': OpenAPI 2.0 has no cookie parameters"
                )
            out.update(self._inline(param.shape))
            if is_array and param.explode:
                out["collectionFormat"] = "multi"
        else:
            if is_array and param.location is ParameterLocation.query:
                out["style"] = "form"
                out["explode"] = param.explode
            out["schema"] = self.schema(param.shape)

        if param.summary:
            out["x-ms-summary"] = param.summary
        return out

    def body_parameters_v2(self, body: RequestBodyDeclaration) -> List[Dict[str, Any]]:
        """2.0: one ``body`` parameter, or one ``formData`` parameter per field."""
        if body.content_type not in FORM_CONTENT_TYPES:
            out: Dict[str, Any] = {"in": "body", "name": "body"}
            if body.description:
                out["description"] = body.description
            out["required"] = body.required
            out["schema"] = self.schema(body.shape)
            return [out]

        shape = body.shape
        if isinstance(shape, ObjectRef):
            shape = self.components.resolve(shape.name)
        if not isinstance(shape, ObjectShape):
            raise UnsupportedShape("Form bodies must describe an object")

        params: List[Dict[str, Any]] = []
        for name, field_shape in shape.fields:
            param: Dict[str, Any] = {
                "name": name,
                "in": "formData",
                "required": name in shape.required,
            }
            if field_shape == Primitive(PrimitiveKind.binary):
                param["type"] = "file"
            else:
                param.update(self._inline(field_shape))
            params.append(param)
        return params

    def request_body_v3(self, body: RequestBodyDeclaration) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if body.description:
            out["description"] = body.description
        out["content"] = {body.content_type: {"schema": self.schema(body.shape)}}
        out["required"] = body.required
        return out

    def response(self, response: ResponseDeclaration) -> Dict[str, Any]:
        out: Dict[str, Any] = {"description": _response_description(response)}
        if response.has_body:
            schema = self.schema(response.shape)
            if self.version is OpenApiVersion.v2:
                out["schema"] = schema
            else:
                content_type = response.content_type or "application/json"
                out["content"] = {content_type: {"schema": schema}}
        if response.summary:
            out["x-ms-summary"] = response.summary
        return out

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------
    def security_scheme(self, scheme: SecurityScheme) -> Optional[Dict[str, Any]]:
        """Return the scheme object, or None when 2.0 cannot express it."""
        if self.version is OpenApiVersion.v2:
            return _security_scheme_v2(scheme)
        return _security_scheme_v3(scheme)


def _primitive(kind: PrimitiveKind) -> Dict[str, Any]:
    type_name, fmt = kind.type_and_format
    out: Dict[str, Any] = {"type": type_name}
    if fmt:
        out["format"] = fmt
    return out


def _response_description(response: ResponseDeclaration) -> str:
    if response.description:
        return response.description
    if response.summary:
        return response.summary
    try:
        return HTTPStatus(response.status_code).phrase
    except ValueError:
        return str(response.status_code)


def _flow_v3(flow: OAuthFlow) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if flow.authorization_url:
        out["authorizationUrl"] = flow.authorization_url
    if flow.token_url:
        out["tokenUrl"] = flow.token_url
    if flow.refresh_url:
        out["refreshUrl"] = flow.refresh_url
    out["scopes"] = dict(flow.scopes)
    return out


def _security_scheme_v3(scheme: SecurityScheme) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": scheme.kind.value}
    if scheme.description:
        out["description"] = scheme.description
    if scheme.kind is SecuritySchemeKind.api_key:
        out["name"] = scheme.name
        out["in"] = scheme.location.value if scheme.location else None
    elif scheme.kind is SecuritySchemeKind.http:
        out["scheme"] = scheme.scheme
        if scheme.bearer_format:
            out["bearerFormat"] = scheme.bearer_format
    elif scheme.kind is SecuritySchemeKind.oauth2:
        out["flows"] = {
            kind.value: _flow_v3(flow)
            for kind, flow in sorted(scheme.flows.items(), key=lambda kv: _flow_order(kv[0]))
        }
    elif scheme.kind is SecuritySchemeKind.open_id_connect:
        out["openIdConnectUrl"] = scheme.open_id_connect_url
    return out


def _security_scheme_v2(scheme: SecurityScheme) -> Optional[Dict[str, Any]]:
    out: Dict[str, Any]
    if scheme.kind is SecuritySchemeKind.api_key:
        out = {"type": "apiKey", "name": scheme.name}
        out["in"] = scheme.location.value if scheme.location else None
    elif scheme.kind is SecuritySchemeKind.http:
        if (scheme.scheme or "").lower() != "basic":
            return None
        out = {"type": "basic"}
    elif scheme.kind is SecuritySchemeKind.oauth2:
        kind, flow = sorted(scheme.flows.items(), key=lambda kv: _flow_order(kv[0]))[0]
        out = {"type": "oauth2", "flow": _V2_FLOW_NAMES[kind]}
        if flow.authorization_url and kind in (
            OAuthFlowKind.implicit,
            OAuthFlowKind.authorization_code,
        ):
            out["authorizationUrl"] = flow.authorization_url
        if flow.token_url and kind is not OAuthFlowKind.implicit:
            out["tokenUrl"] = flow.token_url
        out["scopes"] = dict(flow.scopes)
    else:
        return None
    if scheme.description:
        out["description"] = scheme.description
    return out


def _flow_order(kind: OAuthFlowKind) -> int:
    return list(OAuthFlowKind).index(kind)


def dump(document: Dict[str, Any], fmt: DocumentFormat) -> bytes:
    """Serialize *document* preserving key order."""
    if fmt is DocumentFormat.json:
        return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
    return yaml.safe_dump(
        document,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    ).encode("utf-8")
