#!/usr/bin/env python
"""Print random keys suitable for ``OPENAPI__API_KEY``."""

from __future__ import annotations

import argparse
import secrets
import sys
from typing import List

__all__: list[str] = []


def _parse_args() -> argparse.Namespace:  # noqa: D401 – CLI helper
    parser = argparse.ArgumentParser(
        description="Generate random API keys protecting the OpenAPI document",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of keys to generate.",
    )
    parser.add_argument(
        "--bytes",
        type=int,
        default=32,
        dest="n_bytes",
        help="Random bytes per key (before URL-safe encoding).",
    )
    parser.add_argument(
        "--env",
        action="store_true",
        help="Print as an OPENAPI__API_KEY=... line for a .env file.",
    )
    return parser.parse_args()


def _generate_keys(n: int, n_bytes: int = 32) -> List[str]:  # noqa: D401 – internal helper
    if n <= 0:
        raise ValueError("count must be a positive integer")
    if n_bytes < 16:
        raise ValueError("bytes must be at least 16")
    return [secrets.token_urlsafe(n_bytes) for _ in range(n)]


def main() -> None:  # noqa: D401 – entry-point
    args = _parse_args()
    try:
        keys = _generate_keys(args.count, args.n_bytes)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    for key in keys:
        print(f"OPENAPI__API_KEY={key}" if args.env else key)


if __name__ == "__main__":  # pragma: no cover – CLI only
    main()
