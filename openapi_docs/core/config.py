from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from openapi_docs.declarations.security import SecurityScheme
from openapi_docs.declarations.types import Visibility

__all__: list[str] = [
    "OpenApiVersion",
    "AuthLevel",
    "AuthLevelSettings",
    "ApiKeyTransport",
    "Settings",
    "get_settings",
]


def _parse_csv_str(v: str) -> List[str]:
    """Parse a comma-separated string into a list of values, stripping whitespace."""
    return [x.strip() for x in v.split(",") if x.strip()]


class OpenApiVersion(str, Enum):
    """Major version of the served specification document."""

    v2 = "v2"
    v3 = "v3"


class AuthLevel(str, Enum):
    anonymous = "anonymous"
    function = "function"
    system = "system"
    admin = "admin"


class ApiKeyTransport(str, Enum):
    header = "header"
    query = "query"


_DEFAULT_KEY_NAMES: Dict[ApiKeyTransport, str] = {
    ApiKeyTransport.header: "x-functions-key",
    ApiKeyTransport.query: "code",
}


class AuthLevelSettings(BaseModel):
    """Authorization level of the document and of the viewer page."""

    document: AuthLevel = AuthLevel.anonymous
    ui: AuthLevel = AuthLevel.anonymous

    @field_validator("document", "ui", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Document settings, loaded from ``OPENAPI__*`` environment variables.

    Nested values use a double underscore, e.g. ``OPENAPI__AUTH_LEVEL__UI``.
    ``OPENAPI__SECURITY_SCHEMES`` takes a JSON object mapping scheme names to
    scheme definitions.
    """

    debug: bool = False

    version: OpenApiVersion = OpenApiVersion.v2
    doc_version: str = "1.0.0"
    doc_title: str = "OpenAPI Document on Azure Functions"
    doc_description: Optional[str] = None

    host_names: Optional[str] = None
    exclude_requesting_host: bool = False
    force_https: bool = False
    force_http: bool = False
    route_prefix: str = "api"
    backend_proxy_url: Optional[str] = None

    hide_swagger_ui: bool = False
    hide_document: bool = False

    api_key: Optional[str] = None
    api_key_location: ApiKeyTransport = ApiKeyTransport.header
    api_key_name: Optional[str] = None
    auth_level: AuthLevelSettings = Field(default_factory=AuthLevelSettings)

    minimum_visibility: Visibility = Visibility.internal
    security_schemes: Dict[str, SecurityScheme] = Field(default_factory=dict)

    # Snapshots kept per (version, requesting host); least recently used go first.
    document_cache_size: int = Field(default=16, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="OPENAPI__",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, v: Any) -> Any:
        """Accept ``2``, ``V3``, ``v2`` alike."""
        if isinstance(v, (int, str)) and not isinstance(v, OpenApiVersion):
            text = str(v).strip().lower()
            return text if text.startswith("v") else f"v{text}"
        return v

    @field_validator("minimum_visibility", "api_key_location", mode="before")
    @classmethod
    def _lower_enum_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("route_prefix")
    @classmethod
    def _strip_prefix(cls, v: str) -> str:
        return v.strip("/")

    @field_validator("api_key", "backend_proxy_url", "host_names", mode="before")
    @classmethod
    def _empty_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.force_https and self.force_http:
            raise ValueError("FORCE_HTTPS and FORCE_HTTP cannot both be enabled")
        protected = (
            self.auth_level.document is not AuthLevel.anonymous
            or self.auth_level.ui is not AuthLevel.anonymous
        )
        if protected and self.api_key is None:
            raise ValueError("A non-anonymous AUTH_LEVEL requires API_KEY to be set")
        return self

    @property
    def host_name_list(self) -> List[str]:
        """``host_names`` split into individual base URLs."""
        if not self.host_names:
            return []
        return _parse_csv_str(self.host_names)

    @property
    def effective_api_key_name(self) -> str:
        return self.api_key_name or _DEFAULT_KEY_NAMES[self.api_key_location]

    def is_visible(self, visibility: Visibility) -> bool:
        """Return True if an operation of *visibility* belongs in the served view."""
        return visibility.importance >= self.minimum_visibility.importance


_CACHED_SETTINGS: Optional[Settings] = None


def get_settings() -> Settings:  # noqa: D401 – accessor helper
    """Return a **singleton** Settings instance unless running under pytest.

    Under pytest every call builds a fresh instance so tests can change the
    environment with ``monkeypatch`` and observe the result immediately.
    """

    global _CACHED_SETTINGS  # noqa: PLW0603 – module-level singleton

    if "PYTEST_CURRENT_TEST" in os.environ:
        return Settings()

    if _CACHED_SETTINGS is None:
        _CACHED_SETTINGS = Settings()

    return _CACHED_SETTINGS


def _clear_settings_cache() -> None:  # noqa: D401 – helper for tests
    """Clear the internal Settings singleton."""

    global _CACHED_SETTINGS
    _CACHED_SETTINGS = None


get_settings.cache_clear = _clear_settings_cache  # type: ignore[attr-defined]
