"""Ephemeral, session-scoped working copy of the demo catalog.

Visitors may edit or remove demo prompts while browsing, but those changes live
only in the session scope and vanish when the session ends. The catalog in
:mod:`core.demo_content` is never modified.

Updates:
  v0.1.1 - 2026-09-11 - Fall back to the catalog when the session copy is unreadable.
  v0.1.0 - 2026-09-10 - Initial session copy of the demo catalog.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from models.guest_work import SYSTEM_OWNER, Prompt
from models.timestamp import DocumentTimestamp

from .demo_content import get_demo_prompts
from .exceptions import DemoPromptNotFoundError, GuestStorageError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .storage import KeyValueStorage

logger = logging.getLogger("prism.demo_session")

DEMO_SESSION_KEY = "prism_demo_prompts_session"
_PRESERVED_FIELDS = frozenset({"id", "is_demo", "owner", "created_at"})


class DemoPromptSession:
    """Hold the visitor's edited copy of the demo catalog in session storage."""

    def __init__(
        self,
        session_storage: KeyValueStorage,
        *,
        clock: Callable[[], DocumentTimestamp] = DocumentTimestamp.now,
    ) -> None:
        self._storage = session_storage
        self._clock = clock

    def _load(self) -> dict[str, Any] | None:
        try:
            raw = self._storage.get_item(DEMO_SESSION_KEY)
        except GuestStorageError:
            logger.warning("Unable to read demo session copy", exc_info=True)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable demo session copy")
            return None
        return data if isinstance(data, dict) else None

    def _save(self, prompts: list[Prompt], initialized_at: Any) -> None:
        payload = {
            "prompts": [prompt.to_record() for prompt in prompts],
            "initialized_at": initialized_at,
        }
        self._storage.set_item(DEMO_SESSION_KEY, json.dumps(payload))

    def is_initialized(self) -> bool:
        try:
            return self._storage.get_item(DEMO_SESSION_KEY) is not None
        except GuestStorageError:
            return False

    def initialize(self) -> list[Prompt]:
        """Seed the session copy from the catalog unless it already exists."""
        if self._load() is not None:
            return self.get_prompts()
        prompts = get_demo_prompts()
        try:
            self._save(prompts, self._clock().to_record())
        except GuestStorageError:
            logger.error("Unable to seed demo session copy; serving catalog", exc_info=True)
        return prompts

    def get_prompts(self) -> list[Prompt]:
        data = self._load()
        if data is None:
            return self.initialize()
        records = data.get("prompts")
        if not isinstance(records, list):
            return get_demo_prompts()
        return [Prompt.from_record(record) for record in records]

    def update_prompt(self, prompt_id: str, updates: Mapping[str, Any]) -> Prompt:
        """Apply *updates* to the session copy of a demo prompt and return it."""
        prompts = self.get_prompts()
        for index, original in enumerate(prompts):
            if original.id == prompt_id:
                break
        else:
            raise DemoPromptNotFoundError(f"Demo prompt {prompt_id} not found")

        allowed = {key: value for key, value in updates.items() if key not in _PRESERVED_FIELDS}
        allowed.update({"updated_at": self._clock(), "is_demo": True, "owner": SYSTEM_OWNER})
        updated = original.merged(allowed)
        prompts[index] = updated
        self._save(prompts, self._initialized_at())
        return updated

    def delete_prompt(self, prompt_id: str) -> bool:
        prompts = [prompt for prompt in self.get_prompts() if prompt.id != prompt_id]
        self._save(prompts, self._initialized_at())
        return True

    def reset(self) -> list[Prompt]:
        """Discard session edits and reseed from the catalog."""
        try:
            self._storage.remove_item(DEMO_SESSION_KEY)
        except GuestStorageError:
            logger.error("Unable to clear demo session copy", exc_info=True)
            return get_demo_prompts()
        return self.initialize()

    def _initialized_at(self) -> Any:
        data = self._load() or {}
        return data.get("initialized_at") or self._clock().to_record()


__all__ = ["DEMO_SESSION_KEY", "DemoPromptSession"]
