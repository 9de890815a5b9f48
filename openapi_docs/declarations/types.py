from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

__all__: list[str] = [
    "HttpVerb",
    "Visibility",
    "ParameterLocation",
    "ParameterDeclaration",
    "RequestBodyDeclaration",
    "ResponseDeclaration",
    "SecurityRequirement",
    "EndpointDeclaration",
]

_ROUTE_PARAM = re.compile(r"{([^{}/]+)}")


class HttpVerb(str, Enum):
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"


class Visibility(str, Enum):
    """How prominently an operation should be presented to API consumers."""

    important = "important"
    advanced = "advanced"
    internal = "internal"

    @property
    def importance(self) -> int:
        return _IMPORTANCE[self]


_IMPORTANCE = {
    Visibility.important: 3,
    Visibility.advanced: 2,
    Visibility.internal: 1,
}


class ParameterLocation(str, Enum):
    path = "path"
    query = "query"
    header = "header"
    cookie = "cookie"


@dataclass(frozen=True)
class ParameterDeclaration:
    """
    A single operation parameter.

    Attributes:
        name: Parameter name as it appears on the wire.
        location: Where the value is carried (path, query, header or cookie).
        shape: A DataShape or any type descriptor the synthesizer accepts.
        required: Whether the parameter must be supplied. Always True for
            path parameters.
        explode: Whether array values are sent as repeated keys.
        summary: Short label, emitted as ``x-ms-summary``.
        description: Longer human-readable explanation.
    """

    name: str
    location: ParameterLocation
    shape: Any = str
    required: bool = False
    explode: bool = False
    summary: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if self.location is ParameterLocation.path and not self.required:
            object.__setattr__(self, "required", True)


@dataclass(frozen=True)
class RequestBodyDeclaration:
    content_type: str
    shape: Any
    required: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class ResponseDeclaration:
    """One documented response; ``shape`` is None for body-less responses."""

    status_code: int
    content_type: Optional[str] = None
    shape: Any = None
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def has_body(self) -> bool:
        return self.shape is not None


@dataclass(frozen=True)
class SecurityRequirement:
    scheme_name: str
    scopes: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", tuple(self.scopes))


@dataclass(frozen=True)
class EndpointDeclaration:
    """
    Everything the document needs to know about one handler.

    Instances are value objects: build one per endpoint and pass it to
    :meth:`EndpointRegistry.register`.  Sequences given as lists are stored as
    tuples so a declaration cannot change after it was created.
    """

    operation_id: str
    verb: HttpVerb
    route: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    visibility: Visibility = Visibility.important
    deprecated: bool = False
    parameters: Tuple[ParameterDeclaration, ...] = ()
    request_body: Optional[RequestBodyDeclaration] = None
    responses: Tuple[ResponseDeclaration, ...] = ()
    security: Tuple[SecurityRequirement, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.operation_id:
            raise ValueError("operation_id must be a non-empty string")
        verb = self.verb.value if isinstance(self.verb, HttpVerb) else str(self.verb)
        object.__setattr__(self, "verb", HttpVerb(verb.upper()))
        object.__setattr__(self, "route", self.route.strip("/"))
        # Keep first occurrence order; duplicates are meaningless for grouping.
        object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "responses", tuple(self.responses))
        object.__setattr__(self, "security", tuple(self.security))

    @property
    def path(self) -> str:
        """Route template with a leading slash, as used for document keys."""
        return f"/{self.route}"

    @property
    def route_parameters(self) -> Tuple[str, ...]:
        """Names of the ``{placeholders}`` in the route template, in order."""
        return tuple(_ROUTE_PARAM.findall(self.route))
