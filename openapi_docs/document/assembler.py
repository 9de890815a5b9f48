"""
Document Assembler

Merges registered endpoint declarations, the component table and the document
settings into an :class:`AssembledDocument`: an immutable snapshot holding the
serialized JSON and YAML bytes of one OpenAPI document.

Key Responsibilities:
- Validate the registry (parameter names, route templates, security scheme
  references, component references) before anything is served.
- Filter endpoints by visibility for the served view.
- Order operations by tag (first appearance) and registration order.
- Emit only the components reachable from the included operations.
- Render the configured specification version (2.0 or 3.0.1).
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

import structlog

from openapi_docs.core.config import OpenApiVersion, Settings
from openapi_docs.core.exceptions import (
    DuplicateParameter,
    InvalidRoute,
    UnknownSecurityScheme,
    UnsupportedShape,
)
from openapi_docs.declarations.types import EndpointDeclaration, ParameterLocation
from openapi_docs.document.render import DocumentFormat, ShapeRenderer, dump
from openapi_docs.schema.shapes import (
    ObjectShape,
    SchemaComponentTable,
    iter_references,
)

__all__: list[str] = [
    "AssembledDocument",
    "DocumentAssembler",
    "build_servers",
]

logger = structlog.get_logger(__name__)

_SPEC_VERSIONS: Dict[OpenApiVersion, Tuple[str, str]] = {
    OpenApiVersion.v2: ("swagger", "2.0"),
    OpenApiVersion.v3: ("openapi", "3.0.1"),
}


@dataclass(frozen=True)
class AssembledDocument:
    """
    Immutable snapshot of one rendered document.

    Attributes:
        version: Specification version the document was rendered in.
        servers: Base URLs listed in the document.
        json_bytes: Serialized JSON document.
        yaml_bytes: Serialized YAML document.
        operation_count: Number of operations included.
        generation: Settings generation the snapshot was built from.
        built_at: UTC build time.
    """

    version: OpenApiVersion
    servers: Tuple[str, ...]
    json_bytes: bytes
    yaml_bytes: bytes
    operation_count: int
    generation: int = 0
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def body(self, fmt: DocumentFormat) -> bytes:
        return self.json_bytes if fmt is DocumentFormat.json else self.yaml_bytes

    def as_dict(self) -> Dict[str, Any]:
        """Return a fresh, mutable copy of the document."""
        return json.loads(self.json_bytes)


def _with_scheme(url: str, scheme: Optional[str]) -> str:
    parts = urlsplit(url)
    if scheme is None or not parts.scheme:
        return url
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def build_servers(settings: Settings, requesting_host: Optional[str] = None) -> List[str]:
    """Return the server base URLs for *settings*.

    The requesting host (``scheme://host[:port]``) comes first unless
    ``exclude_requesting_host`` is set; ``backend_proxy_url`` stands in for it
    when configured.  Configured host names follow.  Entries without a scheme
    default to https and get the route prefix appended.
    """

    prefix = f"/{settings.route_prefix}" if settings.route_prefix else ""
    candidates: List[str] = []

    if not settings.exclude_requesting_host:
        if settings.backend_proxy_url:
            candidates.append(settings.backend_proxy_url.rstrip("/"))
        elif requesting_host:
            candidates.append(f"{requesting_host.rstrip('/')}{prefix}")

    for host in settings.host_name_list:
        host = host.rstrip("/")
        if "://" not in host:
            host = f"https://{host}{prefix}"
        candidates.append(host)

    scheme: Optional[str] = None
    if settings.force_https:
        scheme = "https"
    elif settings.force_http:
        scheme = "http"

    servers: List[str] = []
    for url in candidates:
        url = _with_scheme(url, scheme)
        if url not in servers:
            servers.append(url)
    return servers


class DocumentAssembler:
    """Validate declarations and render them into :class:`AssembledDocument` snapshots."""

    def validate(
        self,
        settings: Settings,
        endpoints: Sequence[EndpointDeclaration],
        components: SchemaComponentTable,
    ) -> None:
        """Raise the first registration-time error found, if any.

        Raises:
            DuplicateParameter: Parameter names repeat within an endpoint.
            InvalidRoute: Route placeholders and path parameters disagree, or
                two endpoints share a verb and route.
            UnknownSecurityScheme: A requirement names an undeclared scheme.
            ShapeCycleUnresolved: A component reference has no definition.
            UnsupportedShape: A shape cannot be expressed in the configured
                specification version.
        """
        self._check(settings, endpoints, components)

        # Render once to surface version-specific shape errors at startup.
        try:
            self._render(settings, endpoints, components, servers=[])
        except UnsupportedShape as exc:
            raise UnsupportedShape(f"{settings.version.value}: {exc}") from exc

    def _check(
        self,
        settings: Settings,
        endpoints: Sequence[EndpointDeclaration],
        components: SchemaComponentTable,
    ) -> None:
        components.check_complete()
        seen_routes: Dict[Tuple[str, str], str] = {}

        for decl in endpoints:
            _validate_parameters(decl)

            key = (decl.verb.value, decl.path)
            if key in seen_routes:
                raise InvalidRoute(
                    f"'{decl.operation_id}' and '{seen_routes[key]}' both declare "
                    f"{decl.verb.value} {decl.path}"
                )
            seen_routes[key] = decl.operation_id

            for requirement in decl.security:
                if requirement.scheme_name not in settings.security_schemes:
                    raise UnknownSecurityScheme(
                        decl.operation_id, requirement.scheme_name
                    )

    def assemble(
        self,
        settings: Settings,
        endpoints: Sequence[EndpointDeclaration],
        components: SchemaComponentTable,
        *,
        requesting_host: Optional[str] = None,
        apply_visibility: bool = True,
        generation: int = 0,
    ) -> AssembledDocument:
        """Build the snapshot served for ``settings.version``.

        With ``apply_visibility=False`` every endpoint is included (the
        internal view); otherwise endpoints less important than
        ``settings.minimum_visibility`` are left out.
        """
        self._check(settings, endpoints, components)
        included = [
            decl
            for decl in endpoints
            if not apply_visibility or settings.is_visible(decl.visibility)
        ]
        servers = build_servers(settings, requesting_host)
        document = self._render(settings, included, components, servers=servers)

        snapshot = AssembledDocument(
            version=settings.version,
            servers=tuple(servers),
            json_bytes=dump(document, DocumentFormat.json),
            yaml_bytes=dump(document, DocumentFormat.yaml),
            operation_count=len(included),
            generation=generation,
        )
        logger.info(
            "document_assembled",
            version=settings.version.value,
            operations=len(included),
            excluded=len(endpoints) - len(included),
        )
        return snapshot

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _render(
        self,
        settings: Settings,
        endpoints: Sequence[EndpointDeclaration],
        components: SchemaComponentTable,
        *,
        servers: List[str],
    ) -> Dict[str, Any]:
        version = settings.version
        renderer = ShapeRenderer(version, components)
        ordered, tags = _group_by_tag(endpoints)

        paths: Dict[str, Dict[str, Any]] = {}
        scheme_names: List[str] = []
        for decl in ordered:
            operation = self._operation(decl, renderer, settings, scheme_names)
            paths.setdefault(decl.path, {})[decl.verb.value.lower()] = operation

        schemas = {
            name: renderer.component(components.resolve(name))
            for name in _reachable_components(ordered, components)
        }
        security_schemes: Dict[str, Any] = {}
        for name in scheme_names:
            rendered = renderer.security_scheme(settings.security_schemes[name])
            if rendered is not None:
                security_schemes[name] = rendered

        key, number = _SPEC_VERSIONS[version]
        document: Dict[str, Any] = {key: number, "info": _info(settings)}

        if version is OpenApiVersion.v2:
            document.update(_v2_server_fields(servers))
        elif servers:
            document["servers"] = [{"url": url} for url in servers]

        if tags:
            document["tags"] = [{"name": tag} for tag in tags]
        document["paths"] = paths

        if version is OpenApiVersion.v2:
            if schemas:
                document["definitions"] = schemas
            if security_schemes:
                document["securityDefinitions"] = security_schemes
        else:
            comp: Dict[str, Any] = {}
            if schemas:
                comp["schemas"] = schemas
            if security_schemes:
                comp["securitySchemes"] = security_schemes
            if comp:
                document["components"] = comp
        return document

    def _operation(
        self,
        decl: EndpointDeclaration,
        renderer: ShapeRenderer,
        settings: Settings,
        scheme_names: List[str],
    ) -> Dict[str, Any]:
        v2 = renderer.version is OpenApiVersion.v2
        op: Dict[str, Any] = {}
        if decl.tags:
            op["tags"] = list(decl.tags)
        if decl.summary:
            op["summary"] = decl.summary
        if decl.description:
            op["description"] = decl.description
        op["operationId"] = decl.operation_id

        if v2:
            if decl.request_body is not None:
                op["consumes"] = [decl.request_body.content_type]
            produces = list(
                dict.fromkeys(
                    r.content_type or "application/json"
                    for r in decl.responses
                    if r.has_body
                )
            )
            if produces:
                op["produces"] = produces

        parameters = [renderer.parameter(p) for p in decl.parameters]
        if v2 and decl.request_body is not None:
            parameters.extend(renderer.body_parameters_v2(decl.request_body))
        if parameters:
            op["parameters"] = parameters
        if not v2 and decl.request_body is not None:
            op["requestBody"] = renderer.request_body_v3(decl.request_body)

        op["responses"] = {
            str(r.status_code): renderer.response(r) for r in decl.responses
        } or {"default": {"description": "No response declared"}}

        if decl.deprecated:
            op["deprecated"] = True

        security: List[Dict[str, List[str]]] = []
        for requirement in decl.security:
            scheme = settings.security_schemes[requirement.scheme_name]
            if renderer.security_scheme(scheme) is None:
                logger.warning(
                    "security_scheme_not_expressible",
                    scheme=requirement.scheme_name,
                    version=renderer.version.value,
                )
                continue
            security.append({requirement.scheme_name: list(requirement.scopes)})
            if requirement.scheme_name not in scheme_names:
                scheme_names.append(requirement.scheme_name)
        if security:
            op["security"] = security

        op["x-ms-visibility"] = decl.visibility.value
        return op


def _info(settings: Settings) -> Dict[str, Any]:
    info: Dict[str, Any] = {"title": settings.doc_title, "version": settings.doc_version}
    if settings.doc_description:
        info["description"] = settings.doc_description
    return info


def _v2_server_fields(servers: List[str]) -> Dict[str, Any]:
    if not servers:
        return {}
    first = urlsplit(servers[0])
    schemes = [s for s in dict.fromkeys(urlsplit(url).scheme for url in servers) if s]
    out: Dict[str, Any] = {"host": first.netloc, "basePath": first.path or "/"}
    if schemes:
        out["schemes"] = schemes
    return out


def _validate_parameters(decl: EndpointDeclaration) -> None:
    names = Counter(p.name for p in decl.parameters)
    for name, count in names.items():
        if count > 1:
            raise DuplicateParameter(decl.operation_id, name)

    declared = {p.name for p in decl.parameters if p.location is ParameterLocation.path}
    in_route = set(decl.route_parameters)
    if declared != in_route:
        missing = sorted(in_route - declared)
        extra = sorted(declared - in_route)
        raise InvalidRoute(
            f"'{decl.operation_id}' route '{decl.path}' mismatch: "
            f"undeclared {missing}, not in route {extra}"
        )


def _group_by_tag(
    endpoints: Iterable[EndpointDeclaration],
) -> Tuple[List[EndpointDeclaration], List[str]]:
    """Order endpoints by first tag (in order of first appearance), then registration."""
    tags: List[str] = []
    for decl in endpoints:
        for tag in decl.tags:
            if tag not in tags:
                tags.append(tag)

    untagged = len(tags)
    indexed = list(enumerate(endpoints))
    indexed.sort(
        key=lambda item: (
            tags.index(item[1].tags[0]) if item[1].tags else untagged,
            item[0],
        )
    )
    return [decl for _, decl in indexed], tags


def _reachable_components(
    endpoints: Iterable[EndpointDeclaration],
    components: SchemaComponentTable,
) -> List[str]:
    """Names of components referenced (transitively) by *endpoints*, in table order."""
    pending: List[str] = []
    for decl in endpoints:
        for param in decl.parameters:
            pending.extend(iter_references(param.shape))
        if decl.request_body is not None:
            pending.extend(iter_references(decl.request_body.shape))
        for response in decl.responses:
            pending.extend(iter_references(response.shape))

    reachable = set()
    while pending:
        name = pending.pop()
        if name in reachable:
            continue
        reachable.add(name)
        definition = components.resolve(name)
        if isinstance(definition, ObjectShape):
            pending.extend(iter_references(definition))
    return [name for name in components if name in reachable]
