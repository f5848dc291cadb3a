"""Key/value storage backends for guest work.

The guest workspace persists into two scopes: a persistent scope that survives
restarts (the browser's local storage) and a session scope that ends with the
visitor's session. Both are plain string key/value stores with an optional byte
quota; exceeding it raises :class:`StorageQuotaExceededError` so callers can
trim and retry.

Updates:
  v0.2.0 - 2026-09-08 - Add JSON file backend with atomic replace writes.
  v0.1.0 - 2026-08-30 - Introduce storage protocol and in-memory backend.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from .exceptions import GuestStorageError, StorageQuotaExceededError

logger = logging.getLogger("prism.storage")

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
]


class KeyValueStorage(Protocol):
    """Synchronous string storage scoped to one visitor."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value or ``None`` when absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store *value*, raising StorageQuotaExceededError when full."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete *key* if present."""
        ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


def _check_quota(
    items: dict[str, str],
    key: str,
    value: str,
    quota_bytes: int | None,
) -> None:
    if quota_bytes is None:
        return
    used = sum(_entry_size(k, v) for k, v in items.items() if k != key)
    required = used + _entry_size(key, value)
    if required > quota_bytes:
        raise StorageQuotaExceededError(
            f"Storing {key!r} needs {required} bytes; quota is {quota_bytes} bytes"
        )


class InMemoryStorage:
    """Dictionary-backed storage, used for the session scope and in tests."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        _check_quota(self._items, key, value, self._quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStorage:
    """Persist all keys of one scope into a single JSON document on disk."""

    def __init__(self, path: str | Path, quota_bytes: int | None = None) -> None:
        self._path = Path(path).expanduser()
        self._quota_bytes = quota_bytes

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise GuestStorageError(f"Unable to read guest storage at {self._path}") from exc
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GuestStorageError(f"Guest storage at {self._path} is not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise GuestStorageError(f"Guest storage at {self._path} must contain a JSON object")
        return {str(key): str(value) for key, value in parsed.items()}

    def _dump(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(items, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".guest-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise GuestStorageError(f"Unable to write guest storage at {self._path}") from exc

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        _check_quota(items, key, value, self._quota_bytes)
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is None:
            return
        self._dump(items)
        logger.debug("Removed %s from %s", key, self._path)
