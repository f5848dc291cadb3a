"""Argument parser for the Prism CLI.

Updates:
  v0.2.0 - 2026-09-21 - Add serve and rate-limit-check commands.
  v0.1.0 - 2026-09-05 - Initial demo and guest workspace commands.
"""

from __future__ import annotations

import argparse
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    """Return the configured argument parser."""
    parser = argparse.ArgumentParser(description="Prism guest workspace tools")
    parser.add_argument(
        "--logging-config",
        type=Path,
        default=None,
        help="Path to logging configuration file (INI format)",
    )
    parser.add_argument(
        "--print-settings",
        action="store_true",
        help="Print resolved settings and exit",
    )

    subparsers = parser.add_subparsers(dest="command")

    demo_parser = subparsers.add_parser(
        "demo-list",
        help="List the demo prompt catalog with view and copy statistics.",
    )
    demo_parser.add_argument(
        "--json",
        action="store_true",
        help="Print catalog entries as JSON instead of a table.",
    )

    subparsers.add_parser(
        "guest-summary",
        help="Show counts and storage size of the locally stored guest work.",
    )

    export_parser = subparsers.add_parser(
        "guest-export",
        help="Write the backend-shaped migration payload of guest work to JSON.",
    )
    export_parser.add_argument("path", type=Path, help="Destination JSON file path")

    clear_parser = subparsers.add_parser(
        "guest-clear",
        help="Erase locally stored guest work and the guest session identifier.",
    )
    clear_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm deletion without prompting.",
    )

    rate_parser = subparsers.add_parser(
        "rate-limit-check",
        help="Count one request for an identity against an endpoint's rate limit.",
    )
    rate_parser.add_argument("identity", type=str, help="Authenticated user id")
    rate_parser.add_argument(
        "endpoint",
        type=str,
        help="Endpoint label, e.g. enhance, send-invite, generate-invite-link.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the API server with uvicorn.",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Override PRISM_API_HOST.")
    serve_parser.add_argument("--port", type=int, default=None, help="Override PRISM_API_PORT.")
    serve_parser.add_argument(
        "--dev-token",
        action="append",
        default=[],
        metavar="TOKEN:UID",
        help="Accept TOKEN as a bearer token for UID (repeatable; local development only).",
    )
    serve_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable uvicorn access logs.",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Return parsed CLI arguments."""
    return build_parser().parse_args(argv)
