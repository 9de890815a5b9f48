"""
Endpoint Registry

Collects :class:`EndpointDeclaration` objects keyed by operation id during the
single-threaded startup phase.  Registration resolves every type descriptor
into a data shape straight away, so an unsupported payload type fails
registration rather than the first document request.

After :meth:`EndpointRegistry.freeze` the registry is read-only and can be
shared between request threads without locking.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterator, List, Optional

import structlog

from openapi_docs.core.exceptions import DuplicateOperationId, RegistryFrozen
from openapi_docs.declarations.types import (
    EndpointDeclaration,
    RequestBodyDeclaration,
    ResponseDeclaration,
)
from openapi_docs.schema.shapes import SchemaComponentTable
from openapi_docs.schema.synthesizer import SchemaSynthesizer

__all__: list[str] = ["EndpointRegistry"]

logger = structlog.get_logger(__name__)


class EndpointRegistry:
    """Ordered collection of endpoint declarations plus their component table."""

    def __init__(self, synthesizer: Optional[SchemaSynthesizer] = None) -> None:
        self.synthesizer = synthesizer or SchemaSynthesizer()
        self._endpoints: Dict[str, EndpointDeclaration] = {}
        self._frozen = False

    @property
    def components(self) -> SchemaComponentTable:
        return self.synthesizer.components

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, decl: EndpointDeclaration) -> EndpointDeclaration:
        """Add *decl* and return the stored copy with all shapes synthesized.

        Raises:
            RegistryFrozen: The startup phase is over.
            DuplicateOperationId: ``decl.operation_id`` is already registered.
            UnsupportedShape: A parameter, body or response type has no shape.
        """
        if self._frozen:
            raise RegistryFrozen(
                f"Cannot register '{decl.operation_id}': registry is frozen"
            )
        if decl.operation_id in self._endpoints:
            raise DuplicateOperationId(decl.operation_id)

        resolved = self._resolve_shapes(decl)
        self._endpoints[decl.operation_id] = resolved
        logger.debug(
            "endpoint_registered",
            operation_id=decl.operation_id,
            verb=resolved.verb.value,
            route=resolved.path,
        )
        return resolved

    def freeze(self) -> None:
        """End the startup phase; further registrations raise."""
        if not self._frozen:
            self._frozen = True
            logger.info("registry_frozen", endpoints=len(self._endpoints))

    def list(self) -> List[EndpointDeclaration]:
        """Return the declarations in registration order."""
        return list(self._endpoints.values())

    def get(self, operation_id: str) -> Optional[EndpointDeclaration]:
        return self._endpoints.get(operation_id)

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[EndpointDeclaration]:
        return iter(self.list())

    # ------------------------------------------------------------------
    # Shape resolution
    # ------------------------------------------------------------------
    def _resolve_shapes(self, decl: EndpointDeclaration) -> EndpointDeclaration:
        synthesize = self.synthesizer.synthesize

        parameters = tuple(
            dataclasses.replace(p, shape=synthesize(p.shape)) for p in decl.parameters
        )
        body: Optional[RequestBodyDeclaration] = None
        if decl.request_body is not None:
            body = dataclasses.replace(
                decl.request_body, shape=synthesize(decl.request_body.shape)
            )
        responses = tuple(self._resolve_response(r) for r in decl.responses)
        return dataclasses.replace(
            decl,
            parameters=parameters,
            request_body=body,
            responses=responses,
        )

    def _resolve_response(self, response: ResponseDeclaration) -> ResponseDeclaration:
        if not response.has_body:
            return response
        return dataclasses.replace(
            response, shape=self.synthesizer.synthesize(response.shape)
        )
