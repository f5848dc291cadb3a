"""Shared CLI utility functions for Prism commands.

Updates:
  v0.1.1 - 2026-09-14 - Mask passwords embedded in connection URLs.
  v0.1.0 - 2026-08-30 - Stdout logging, DSN masking, and path helpers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit, urlunsplit

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from logging import Logger


def print_and_log(logger: Logger, level: int, message: str) -> None:
    """Log *message* at *level* and mirror it to stdout."""
    logger.log(level, message)
    print(message)


def mask_dsn(value: str | None) -> str:
    """Return *value* with any embedded password replaced by ``****``."""
    if not value:
        return "not set"
    parts = urlsplit(value)
    if not parts.password:
        return value
    userinfo = f"{parts.username}:****" if parts.username else ":****"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, parts.query, parts.fragment))


def describe_path(path_value: str | Path | None, *, expect_directory: bool) -> str:
    """Return a human-friendly description of *path_value* suitability."""
    if path_value is None:
        return "not set"

    resolved = Path(path_value).expanduser()
    if resolved.exists():
        if expect_directory and not resolved.is_dir():
            return f"{resolved} (exists but is not a directory)"
        return f"{resolved} (exists)"
    return f"{resolved} (missing - created on demand)"


def write_json(path: Path, payload: Any) -> Path:
    """Write *payload* as indented UTF-8 JSON and return the resolved path."""
    resolved = path.expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return resolved
