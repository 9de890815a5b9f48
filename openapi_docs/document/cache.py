"""
Snapshot cache with build-once semantics.

Each cache key (specification version plus, when the requesting host is part
of the server list, that host) moves through::

    unbuilt -> building -> served -> stale (settings reloaded) -> building -> served

At most one build per key is in flight.  The cache holds at most
``max_entries`` keys; once full, the least recently used idle entry is evicted,
so a stream of distinct requesting hosts cannot grow it without bound.  Threads asking for a key that is
being built wait on the cache condition and receive the same snapshot, or the
same exception if the build failed.

The cache also owns the current settings so that a reload is one atomic swap
under the cache lock: a build always sees one complete settings object.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable, Optional, Tuple

import structlog

from openapi_docs.core.config import Settings
from openapi_docs.document.assembler import AssembledDocument

__all__: list[str] = ["SnapshotState", "DocumentCache", "Builder"]

logger = structlog.get_logger(__name__)

# (key, settings, generation) -> snapshot
Builder = Callable[[Hashable, Settings, int], AssembledDocument]


class SnapshotState(str, Enum):
    unbuilt = "unbuilt"
    building = "building"
    served = "served"
    stale = "stale"


@dataclass
class _Entry:
    state: SnapshotState = SnapshotState.unbuilt
    snapshot: Optional[AssembledDocument] = None
    error: Optional[BaseException] = None
    attempt: int = 0


class DocumentCache:
    """Memoize :class:`AssembledDocument` snapshots per key.

    Args:
        builder: Called outside the lock to build a snapshot.
        settings: Initial settings (generation 0).
        max_entries: Upper bound on cached keys.
    """

    def __init__(
        self, builder: Builder, settings: Settings, max_entries: int = 16
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._builder = builder
        self._cond = threading.Condition()
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        self._max_entries = max_entries
        self._settings = settings
        self._generation = 0
        self.build_count = 0

    @property
    def settings(self) -> Settings:
        return self._settings

    def __len__(self) -> int:
        with self._cond:
            return len(self._entries)

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        with self._cond:
            return len(self._entries)

    def current(self) -> Tuple[Settings, int]:
        """Return the settings and their generation as one consistent pair."""
        with self._cond:
            return self._settings, self._generation

    def state(self, key: Hashable) -> SnapshotState:
        with self._cond:
            entry = self._entries.get(key)
            return entry.state if entry is not None else SnapshotState.unbuilt

    def reload(self, settings: Settings) -> int:
        """Swap in *settings* and mark every served snapshot stale."""
        with self._cond:
            self._settings = settings
            self._generation += 1
            for entry in self._entries.values():
                if entry.state is SnapshotState.served:
                    entry.state = SnapshotState.stale
            generation = self._generation
        logger.info("settings_reloaded", generation=generation)
        return generation

    def get(self, key: Hashable) -> AssembledDocument:
        """Return the snapshot for *key*, building it if needed."""
        observed_attempt: Optional[int] = None
        with self._cond:
            while True:
                entry = self._entry(key)
                if entry.state is SnapshotState.served and entry.snapshot is not None:
                    return entry.snapshot
                if entry.state is SnapshotState.building:
                    observed_attempt = entry.attempt
                    self._cond.wait()
                    continue
                if (
                    observed_attempt is not None
                    and entry.attempt == observed_attempt
                    and entry.error is not None
                ):
                    # The build we waited for failed; report it, don't retry.
                    raise entry.error

                entry.state = SnapshotState.building
                entry.attempt += 1
                entry.error = None
                settings, generation = self._settings, self._generation
                break

        logger.debug("document_build_started", key=str(key), generation=generation)
        try:
            snapshot = self._builder(key, settings, generation)
        except BaseException as exc:
            with self._cond:
                entry.error = exc
                entry.state = (
                    SnapshotState.stale if entry.snapshot is not None else SnapshotState.unbuilt
                )
                self._cond.notify_all()
            logger.error("document_build_failed", key=str(key), error=str(exc))
            raise

        with self._cond:
            self.build_count += 1
            entry.snapshot = snapshot
            entry.state = (
                SnapshotState.served
                if generation == self._generation
                else SnapshotState.stale
            )
            self._cond.notify_all()
        logger.info(
            "document_built",
            key=str(key),
            generation=generation,
            builds=self.build_count,
        )
        return snapshot

    def _entry(self, key: Hashable) -> _Entry:
        """Return the entry for *key*, creating it and evicting if full.

        Must be called with the lock held.
        """
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
            return entry

        if len(self._entries) >= self._max_entries:
            self._evict()
        entry = self._entries[key] = _Entry()
        return entry

    def _evict(self) -> None:
        # Entries being built have waiters holding them; skip those.
        for key, entry in list(self._entries.items()):
            if len(self._entries) < self._max_entries:
                return
            if entry.state is not SnapshotState.building:
                del self._entries[key]
                logger.debug("document_snapshot_evicted", key=str(key))
