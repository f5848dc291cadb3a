"""Runtime boot helpers for the Prism CLI.

Updates:
  v0.1.1 - 2026-09-21 - Quieten uvicorn access logs unless debugging.
  v0.1.0 - 2026-08-30 - Logging configuration helpers.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

DEFAULT_LOGGING_CONFIG = Path("config/logging.conf")


def setup_logging(logging_conf_path: Path | None) -> None:
    """Configure logging using *logging_conf_path* when available."""
    path = logging_conf_path or DEFAULT_LOGGING_CONFIG
    if path.exists():
        try:
            logging.config.fileConfig(path, disable_existing_loggers=False)
            return
        except Exception:  # pragma: no cover - configuration fallback
            logging.getLogger("prism.cli").warning(
                "Invalid logging configuration at %s; using defaults", path
            )
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def configure_server_logging(debug: bool) -> None:
    """Adjust uvicorn access logging for the API server."""
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
