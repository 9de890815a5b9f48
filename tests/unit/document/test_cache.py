from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Hashable, List

import pytest

from openapi_docs.core.config import OpenApiVersion, Settings
from openapi_docs.document.assembler import AssembledDocument
from openapi_docs.document.cache import DocumentCache, SnapshotState


def _snapshot(generation: int) -> AssembledDocument:
    return AssembledDocument(
        version=OpenApiVersion.v2,
        servers=(),
        json_bytes=b"{}",
        yaml_bytes=b"{}\n",
        operation_count=0,
        generation=generation,
    )


class RecordingBuilder:
    """Builder that can be held open to simulate a slow build."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.started = threading.Event()
        self.release = threading.Event()
        self.release.set()
        self.fail_with: Exception | None = None

    def __call__(self, key: Hashable, settings: Settings, generation: int) -> AssembledDocument:
        self.calls.append((key, settings, generation))
        self.started.set()
        assert self.release.wait(timeout=5)
        if self.fail_with is not None:
            raise self.fail_with
        return _snapshot(generation)


@pytest.fixture
def builder() -> RecordingBuilder:
    return RecordingBuilder()


def test_first_get_builds_then_serves(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())
    assert cache.state("k") is SnapshotState.unbuilt

    first = cache.get("k")
    second = cache.get("k")

    assert first is second
    assert cache.state("k") is SnapshotState.served
    assert cache.build_count == 1
    assert len(builder.calls) == 1


def test_concurrent_first_requests_build_once(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())
    builder.release.clear()

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(cache.get, "k") for _ in range(8)]
        assert builder.started.wait(timeout=5)
        assert cache.state("k") is SnapshotState.building
        builder.release.set()
        results = [f.result(timeout=5) for f in futures]

    assert cache.build_count == 1
    assert len(builder.calls) == 1
    assert all(r is results[0] for r in results)


def test_keys_are_built_independently(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())

    cache.get(("v2", "http://a"))
    cache.get(("v2", "http://b"))

    assert cache.build_count == 2


def test_reload_marks_served_stale_and_rebuilds(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())
    old = cache.get("k")

    new_settings = Settings(doc_title="Reloaded")
    generation = cache.reload(new_settings)

    assert generation == 1
    assert cache.state("k") is SnapshotState.stale
    assert cache.current() == (new_settings, 1)

    rebuilt = cache.get("k")
    assert rebuilt is not old
    assert rebuilt.generation == 1
    assert builder.calls[-1][1] is new_settings
    assert cache.state("k") is SnapshotState.served


def test_reload_during_build_leaves_result_stale(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())
    builder.release.clear()

    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(cache.get, "k")
        assert builder.started.wait(timeout=5)
        cache.reload(Settings(doc_title="Newer"))
        builder.release.set()
        snapshot = future.result(timeout=5)

    assert snapshot.generation == 0
    assert cache.state("k") is SnapshotState.stale
    assert cache.get("k").generation == 1


def test_build_failure_propagates_to_waiters(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings())
    builder.release.clear()
    builder.fail_with = RuntimeError("boom")

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [pool.submit(cache.get, "k") for _ in range(4)]
        assert builder.started.wait(timeout=5)
        builder.release.set()
        for f in futures:
            with pytest.raises(RuntimeError, match="boom"):
                f.result(timeout=5)

    assert cache.state("k") is SnapshotState.unbuilt
    assert cache.build_count == 0

    # A later request retries the build.
    builder.fail_with = None
    assert cache.get("k").generation == 0
    assert cache.build_count == 1


def test_cache_evicts_least_recently_used_key(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings(), max_entries=2)

    cache.get("a")
    cache.get("b")
    cache.get("a")  # "b" is now the oldest
    cache.get("c")

    assert len(cache) == 2
    assert cache.state("a") is SnapshotState.served
    assert cache.state("b") is SnapshotState.unbuilt
    assert cache.state("c") is SnapshotState.served

    cache.get("b")
    assert cache.build_count == 4


def test_cache_size_stays_bounded_for_many_keys(builder: RecordingBuilder) -> None:
    cache = DocumentCache(builder, Settings(), max_entries=4)

    for i in range(50):
        cache.get(("v2", f"http://host{i}.example"))

    assert len(cache) == 4


def test_cache_rejects_non_positive_size(builder: RecordingBuilder) -> None:
    with pytest.raises(ValueError):
        DocumentCache(builder, Settings(), max_entries=0)
