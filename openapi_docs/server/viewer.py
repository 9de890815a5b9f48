"""Swagger UI page and its OAuth2 redirect helper.

The viewer is a static page that loads the public ``swagger-ui-dist`` bundle
and points it at the served document.  When the page request carried an API
key, the page forwards that same key when it fetches the document; the
configured key itself is never written into the page.
"""

from __future__ import annotations

import html
import json
from string import Template
from typing import Final, Optional
from urllib.parse import urlencode

from openapi_docs.core.config import ApiKeyTransport

__all__: list[str] = ["SWAGGER_UI_DIST", "render_swagger_ui", "render_oauth2_redirect"]

SWAGGER_UI_DIST: Final[str] = "https://unpkg.com/swagger-ui-dist@5"

_UI_TEMPLATE: Final[Template] = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>$title</title>
  <link rel="stylesheet" href="$dist/swagger-ui.css" />
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="$dist/swagger-ui-bundle.js"></script>
  <script src="$dist/swagger-ui-standalone-preset.js"></script>
  <script>
    window.onload = function () {
      var keyHeader = $key_header;
      window.ui = SwaggerUIBundle({
        url: $document_url,
        dom_id: "#swagger-ui",
        deepLinking: true,
        oauth2RedirectUrl: $redirect_url,
        presets: [SwaggerUIBundle.presets.apis, SwaggerUIStandalonePreset],
        layout: "StandaloneLayout",
        requestInterceptor: function (req) {
          if (keyHeader && req.url.indexOf($document_url) !== -1) {
            req.headers[keyHeader.name] = keyHeader.value;
          }
          return req;
        }
      });
    };
  </script>
</body>
</html>
"""
)

_REDIRECT_PAGE: Final[str] = """<!DOCTYPE html>
<html lang="en">
<head><title>Swagger UI: OAuth2 Redirect</title></head>
<body>
<script src="%s/oauth2-redirect.js"></script>
</body>
</html>
""" % SWAGGER_UI_DIST


def render_swagger_ui(
    title: str,
    document_url: str,
    redirect_url: str,
    key_name: Optional[str] = None,
    key_value: Optional[str] = None,
    key_transport: ApiKeyTransport = ApiKeyTransport.header,
) -> str:
    """Return the viewer HTML for *document_url*.

    ``key_name``/``key_value`` are the key the viewer request presented; the
    page re-sends it as a header or query parameter per ``key_transport``.
    """
    key_header = None
    if key_name and key_value:
        if key_transport is ApiKeyTransport.query:
            separator = "&" if "?" in document_url else "?"
            document_url = f"{document_url}{separator}{urlencode({key_name: key_value})}"
        else:
            key_header = {"name": key_name, "value": key_value}

    return _UI_TEMPLATE.substitute(
        title=html.escape(title),
        dist=SWAGGER_UI_DIST,
        document_url=_js(document_url),
        redirect_url=_js(redirect_url),
        key_header=_js(key_header),
    )


def render_oauth2_redirect() -> str:
    return _REDIRECT_PAGE


def _js(value: object) -> str:
    # json.dumps does not escape "</", which would end the script block.
    return json.dumps(value).replace("</", "<\\/")
