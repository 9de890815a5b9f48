#!/usr/bin/env python
"""Assemble the petstore sample document and write it as JSON or YAML.

Examples::

    python scripts/export_document.py --version v3 --format yaml
    python scripts/export_document.py --host https://petstore.example.com -o swagger.json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from openapi_docs.core.config import OpenApiVersion, Settings
from openapi_docs.core.exceptions import DeclarationError
from openapi_docs.core.logging import configure_logging
from openapi_docs.declarations.registry import EndpointRegistry
from openapi_docs.document.assembler import DocumentAssembler
from openapi_docs.document.render import DocumentFormat
from openapi_docs.samples.petstore import petstore_settings, register_petstore

__all__: list[str] = []


def _parse_args() -> argparse.Namespace:  # noqa: D401 – CLI helper
    parser = argparse.ArgumentParser(
        description="Export the petstore OpenAPI document",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        choices=[v.value for v in OpenApiVersion],
        default=None,
        help="Specification version; defaults to OPENAPI__VERSION.",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in DocumentFormat],
        default=DocumentFormat.json.value,
        help="Output format.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Base URL listed as the requesting host, e.g. http://localhost:8000.",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Include every operation regardless of visibility.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="File to write; stdout when omitted.",
    )
    return parser.parse_args()


def main() -> None:  # noqa: D401 – entry-point
    args = _parse_args()
    configure_logging(debug=False)

    settings = petstore_settings(Settings())
    if args.version:
        settings = settings.model_copy(update={"version": OpenApiVersion(args.version)})

    registry = register_petstore(EndpointRegistry())
    assembler = DocumentAssembler()
    try:
        assembler.validate(settings, registry.list(), registry.components)
        snapshot = assembler.assemble(
            settings,
            registry.list(),
            registry.components,
            requesting_host=args.host,
            apply_visibility=not args.all,
        )
    except DeclarationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    body = snapshot.body(DocumentFormat(args.format))
    if args.output is None:
        sys.stdout.buffer.write(body)
    else:
        args.output.write_bytes(body)
        print(f"Wrote {len(body)} bytes to {args.output}", file=sys.stderr)


if __name__ == "__main__":  # pragma: no cover – CLI only
    main()
