"""Application entry point for Prism guest workspace tooling.

Updates:
  v0.3.0 - 2026-09-21 - Dispatch serve and rate-limit-check commands.
  v0.2.0 - 2026-09-12 - Add --print-settings summary.
  v0.1.0 - 2026-09-05 - Wire settings, guest services, and CLI commands.
"""

from __future__ import annotations

import logging

from cli.commands import COMMAND_SPECS
from cli.parser import build_parser
from cli.runtime import setup_logging
from cli.settings_summary import print_settings_summary
from config import SettingsError, load_settings
from core import build_guest_services


def main(argv: list[str] | None = None) -> int:
    """Entrypoint that wires settings, services, and CLI commands."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.logging_config)

    logger = logging.getLogger("prism.main")
    try:
        settings = load_settings()
    except SettingsError as exc:
        logger.error("Failed to load settings: %s", exc)
        return 2

    if args.print_settings:
        print_settings_summary(settings)
        return 0

    command = getattr(args, "command", None)
    spec = COMMAND_SPECS.get(command) if command else None
    if spec is None:
        parser.print_help()
        return 0

    try:
        services = build_guest_services(settings)
    except Exception as exc:  # pragma: no cover - surfaced to CLI
        logger.error("Failed to initialise services: %s", exc)
        return 3
    return spec.handler(services, args, logger)


if __name__ == "__main__":
    raise SystemExit(main())
