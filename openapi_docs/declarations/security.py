"""Security scheme definitions.

Schemes are configuration, not endpoint metadata: they are declared once in
the settings (``OPENAPI__SECURITY_SCHEMES``) and endpoints reference them by
name through :class:`~openapi_docs.declarations.types.SecurityRequirement`.
They are pydantic models so that pydantic-settings can load them from JSON.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__: list[str] = [
    "SecuritySchemeKind",
    "ApiKeyLocation",
    "OAuthFlowKind",
    "OAuthFlow",
    "SecurityScheme",
]


class SecuritySchemeKind(str, Enum):
    api_key = "apiKey"
    oauth2 = "oauth2"
    open_id_connect = "openIdConnect"
    http = "http"


class ApiKeyLocation(str, Enum):
    header = "header"
    query = "query"
    cookie = "cookie"


class OAuthFlowKind(str, Enum):
    implicit = "implicit"
    password = "password"
    client_credentials = "clientCredentials"
    authorization_code = "authorizationCode"


class OAuthFlow(BaseModel):
    """One OAuth2 flow with its endpoints and scopes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    authorization_url: Optional[str] = Field(None, alias="authorizationUrl")
    token_url: Optional[str] = Field(None, alias="tokenUrl")
    refresh_url: Optional[str] = Field(None, alias="refreshUrl")
    scopes: Dict[str, str] = Field(default_factory=dict)


class SecurityScheme(BaseModel):
    """A named way of authenticating against the documented API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: SecuritySchemeKind = Field(..., alias="type")
    description: Optional[str] = None

    # apiKey
    name: Optional[str] = None
    location: Optional[ApiKeyLocation] = Field(None, alias="in")

    # http
    scheme: Optional[str] = None
    bearer_format: Optional[str] = Field(None, alias="bearerFormat")

    # oauth2
    flows: Dict[OAuthFlowKind, OAuthFlow] = Field(default_factory=dict)

    # openIdConnect
    open_id_connect_url: Optional[str] = Field(None, alias="openIdConnectUrl")

    @model_validator(mode="after")
    def _check_required_parts(self) -> "SecurityScheme":
        if self.kind is SecuritySchemeKind.api_key and (
            not self.name or self.location is None
        ):
            raise ValueError("apiKey schemes need both 'name' and 'in'")
        if self.kind is SecuritySchemeKind.oauth2 and not self.flows:
            raise ValueError("oauth2 schemes need at least one flow")
        if self.kind is SecuritySchemeKind.http and not self.scheme:
            raise ValueError("http schemes need 'scheme' (e.g. basic, bearer)")
        if (
            self.kind is SecuritySchemeKind.open_id_connect
            and not self.open_id_connect_url
        ):
            raise ValueError("openIdConnect schemes need 'openIdConnectUrl'")
        return self
