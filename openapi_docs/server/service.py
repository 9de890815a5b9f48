"""
Document Service

Ties the frozen registry, the assembler and the snapshot cache together.  One
instance lives on ``app.state`` for the lifetime of the process.

Construction validates the registry against the settings and freezes it, so a
registry that would produce an invalid document makes startup fail instead of
the first request.
"""

from __future__ import annotations

from typing import Hashable, Optional, Tuple

import structlog

from openapi_docs.core.config import OpenApiVersion, Settings
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.document.assembler import AssembledDocument, DocumentAssembler
from openapi_docs.document.cache import DocumentCache, SnapshotState

__all__: list[str] = ["DocumentService"]

logger = structlog.get_logger(__name__)


class DocumentService:
    """Serve cached document snapshots for a registry."""

    def __init__(
        self,
        registry: EndpointRegistry,
        settings: Settings,
        assembler: Optional[DocumentAssembler] = None,
    ) -> None:
        self.registry = registry
        self.assembler = assembler or DocumentAssembler()

        self.assembler.validate(settings, registry.list(), registry.components)
        registry.freeze()

        self._cache = DocumentCache(
            self._build, settings, max_entries=settings.document_cache_size
        )
        logger.info(
            "document_service_ready",
            version=settings.version.value,
            endpoints=len(registry),
            components=len(registry.components),
        )

    @property
    def settings(self) -> Settings:
        return self._cache.settings

    @property
    def build_count(self) -> int:
        return self._cache.build_count

    @property
    def cached_snapshots(self) -> int:
        return len(self._cache)

    def cache_key(self, settings: Settings, requesting_host: Optional[str]) -> Hashable:
        """Snapshots differ per requesting host only when it is listed as a server."""
        uses_host = not settings.exclude_requesting_host and not settings.backend_proxy_url
        return (settings.version, requesting_host if uses_host else None)

    def document(self, requesting_host: Optional[str] = None) -> AssembledDocument:
        """Return the served snapshot, building it on first use or after a reload."""
        settings, _ = self._cache.current()
        return self._cache.get(self.cache_key(settings, requesting_host))

    def snapshot_state(self, requesting_host: Optional[str] = None) -> SnapshotState:
        return self._cache.state(self.cache_key(self.settings, requesting_host))

    def internal_document(self, requesting_host: Optional[str] = None) -> AssembledDocument:
        """Assemble the complete view, ignoring visibility. Never cached."""
        settings, generation = self._cache.current()
        return self.assembler.assemble(
            settings,
            self.registry.list(),
            self.registry.components,
            requesting_host=requesting_host,
            apply_visibility=False,
            generation=generation,
        )

    def reload_settings(self, settings: Settings) -> int:
        """Validate *settings* against the registry, then swap them in.

        Invalid settings raise and leave the current ones in place.
        """
        self.assembler.validate(settings, self.registry.list(), self.registry.components)
        return self._cache.reload(settings)

    def _build(
        self, key: Hashable, settings: Settings, generation: int
    ) -> AssembledDocument:
        _, requesting_host = _split_key(key)
        return self.assembler.assemble(
            settings,
            self.registry.list(),
            self.registry.components,
            requesting_host=requesting_host,
            generation=generation,
        )


def _split_key(key: Hashable) -> Tuple[OpenApiVersion, Optional[str]]:
    version, host = key  # type: ignore[misc]
    return version, host
