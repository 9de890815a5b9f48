"""
Core Custom Exceptions

This module defines the domain-specific exceptions raised by the document
builder.  They fall into two families:

- Registration-time errors (`DeclarationError` and subclasses) are raised while
  endpoints are declared, shapes synthesized or the registry validated.  They
  are fatal: the application factory lets them propagate so the process never
  serves a document built from an invalid registry.
- Request-time errors (`AccessError` and subclasses) are raised by the access
  gates in front of the document and viewer.  The API layer maps them to HTTP
  status codes with a generic message that never includes schema details.
"""

from __future__ import annotations

from http import HTTPStatus

__all__: list[str] = [
    "DocumentError",
    "DeclarationError",
    "DuplicateOperationId",
    "DuplicateParameter",
    "InvalidRoute",
    "RegistryFrozen",
    "UnsupportedShape",
    "ComponentConflict",
    "UnknownSecurityScheme",
    "ShapeCycleUnresolved",
    "AccessError",
    "AccessDenied",
    "DocumentHidden",
]


class DocumentError(Exception):
    """Base class for every error raised by ``openapi_docs``."""


class DeclarationError(DocumentError):
    """Raised when endpoint declarations cannot be turned into a document."""


class DuplicateOperationId(DeclarationError):
    """An endpoint with the same operation id is already registered."""

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Operation id '{operation_id}' is already registered")
        self.operation_id = operation_id


class DuplicateParameter(DeclarationError):
    """Two parameters of one endpoint share the same name and location."""

    def __init__(self, operation_id: str, name: str) -> None:
        super().__init__(
            f"Parameter '{name}' is declared more than once on '{operation_id}'"
        )
        self.operation_id = operation_id
        self.name = name


class InvalidRoute(DeclarationError):
    """Route template and declared path parameters disagree."""


class RegistryFrozen(DeclarationError):
    """Registration attempted after the startup phase ended."""


class UnsupportedShape(DeclarationError):
    """A type descriptor has no mapping to a data shape.

    Raised instead of approximating the shape so that a missing mapping is
    visible at startup.
    """


class ComponentConflict(UnsupportedShape):
    """Two different shapes were registered under the same component name."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Component '{name}' is already defined with a different shape"
        )
        self.name = name


class UnknownSecurityScheme(DeclarationError):
    """An endpoint references a security scheme the settings do not define."""

    def __init__(self, operation_id: str, scheme_name: str) -> None:
        super().__init__(
            f"Operation '{operation_id}' references unknown security scheme "
            f"'{scheme_name}'"
        )
        self.operation_id = operation_id
        self.scheme_name = scheme_name


class ShapeCycleUnresolved(DeclarationError):
    """A component reference does not resolve to a defined entry.

    Unreachable when shapes are produced by the synthesizer; seeing it means a
    programming defect (for example a hand-built ``ObjectRef`` to a name that
    was never defined).
    """


class AccessError(DocumentError):
    """Base class for request-time access failures."""

    status_code: int = HTTPStatus.FORBIDDEN
    public_message: str = "Access denied."


class AccessDenied(AccessError):
    """The request did not satisfy the API key or transport policy."""

    def __init__(
        self,
        reason: str,
        status_code: int = HTTPStatus.UNAUTHORIZED,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code
        self.public_message = (
            "Unauthorized." if status_code == HTTPStatus.UNAUTHORIZED else "Forbidden."
        )


class DocumentHidden(AccessError):
    """The document (or the viewer) is switched off by configuration."""

    status_code = HTTPStatus.NOT_FOUND
    public_message = "Not Found"
