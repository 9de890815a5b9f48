# ruff: noqa: E402
from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure repository root is first on sys.path
_repo_root: Path = Path(__file__).resolve().parent.parent  # tests/ -> repo root
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from openapi_docs.api.app import create_app
from openapi_docs.core.config import Settings
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.samples.petstore import petstore_settings, register_petstore

SettingsFactory = Callable[..., Settings]
ClientFactory = Callable[..., TestClient]


@pytest.fixture(autouse=True)
def _disable_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent the Settings class from reading the developer *.env* file.

    Unit-tests must operate against a *clean* environment.  The fixture
    patches ``Settings.model_config['env_file']`` to ``None`` so that Pydantic
    skips dotenv processing entirely, and removes every ``OPENAPI__*``
    variable inherited from the shell.  Individual tests remain free to set
    variables via ``monkeypatch``.
    """

    monkeypatch.setitem(Settings.model_config, "env_file", None)
    for name in list(os.environ):
        if name.upper().startswith("OPENAPI__"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings() -> SettingsFactory:
    """Build real Settings with the petstore security schemes merged in."""

    def _factory(**overrides: Any) -> Settings:
        return petstore_settings(Settings(**overrides))

    return _factory


@pytest.fixture
def settings(make_settings: SettingsFactory) -> Settings:
    return make_settings()


@pytest.fixture
def petstore_registry() -> EndpointRegistry:
    return register_petstore(EndpointRegistry())


@pytest.fixture
def make_client(make_settings: SettingsFactory) -> Iterator[ClientFactory]:
    """Create TestClients for a fresh petstore app configured by overrides.

    A new registry is built per client because ``create_app`` freezes it.
    """

    clients: list[TestClient] = []

    def _factory(**overrides: Any) -> TestClient:
        app = create_app(register_petstore(EndpointRegistry()), make_settings(**overrides))
        client = TestClient(app, raise_server_exceptions=False)
        clients.append(client)
        return client

    yield _factory

    for client in clients:
        client.close()
