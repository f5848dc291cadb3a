"""Local persistence of guest work until the visitor signs up.

A :class:`GuestStateManager` owns exactly one :class:`~models.guest_work.LocalWork`
record per visitor session. The record lives in the persistent storage scope
under ``prism_guest_work``; the session identifier lives in the session scope
under ``prism_guest_session`` and is generated once per session.

Writes never raise: storage failures are logged and reported through
:class:`~models.guest_work.StoreResult`. When the persistent scope reports quota
exhaustion the record is trimmed to the retention limits and written once more.

The manager is not a module-level singleton. Build one at application start
(see :func:`core.factory.build_guest_services`) and pass it to consumers.

Updates:
  v0.5.0 - 2026-09-14 - Add storage size reporting for the upsell panel.
  v0.4.0 - 2026-09-08 - Regenerate the session identifier lazily after clearing work.
  v0.3.0 - 2026-09-05 - Trim to retention limits and retry once on quota exhaustion.
  v0.2.0 - 2026-09-02 - Track enhancement count on enhancement updates.
  v0.1.0 - 2026-08-30 - Initial local work store.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from models.guest_work import (
    DEFAULT_VISIBILITY,
    GUEST_OWNER,
    UNTITLED_PROMPT,
    ChatMessage,
    LocalWork,
    MigrationMetadata,
    MigrationPayload,
    Prompt,
    PromptOutput,
    StorageInfo,
    StoreResult,
    WorkSummary,
)
from models.timestamp import DocumentTimestamp, timestamp_record

from .exceptions import GuestStorageError, StorageQuotaExceededError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .storage import KeyValueStorage

logger = logging.getLogger("prism.guest_state")

GUEST_STORAGE_KEY = "prism_guest_work"
GUEST_SESSION_KEY = "prism_guest_session"

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_PROTECTED_PROMPT_FIELDS = frozenset({"id", "owner", "created_at", "is_guest"})


@dataclass(frozen=True, slots=True)
class RetentionLimits:
    """Number of most recent entries kept when storage runs out of room."""

    prompts: int = 10
    outputs: int = 20
    chat_messages: int = 50


DEFAULT_RETENTION = RetentionLimits()


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def _keep_last(items: list[Any], limit: int) -> list[Any]:
    if limit <= 0:
        return []
    return items[-limit:] if len(items) > limit else list(items)


class GuestStateManager:
    """Store guest prompts, outputs, and chat messages in browser-scoped storage."""

    def __init__(
        self,
        storage: KeyValueStorage,
        session_storage: KeyValueStorage,
        *,
        retention: RetentionLimits = DEFAULT_RETENTION,
        clock: Callable[[], DocumentTimestamp] = DocumentTimestamp.now,
    ) -> None:
        self._storage = storage
        self._session_storage = session_storage
        self._retention = retention
        self._clock = clock
        self._fallback_session_id: str | None = None
        self._get_or_create_session_id()

    # ------------------------------------------------------------------
    # Session and record persistence
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        """Identifier of the current guest session."""
        return self._get_or_create_session_id()

    def _get_or_create_session_id(self) -> str:
        try:
            session_id = self._session_storage.get_item(GUEST_SESSION_KEY)
        except GuestStorageError:
            logger.warning("Unable to read guest session id", exc_info=True)
            session_id = None
        if session_id:
            return session_id
        if self._fallback_session_id is None:
            self._fallback_session_id = (
                f"guest_{self._clock().to_millis()}_{_random_base36(9)}"
            )
        session_id = self._fallback_session_id
        try:
            self._session_storage.set_item(GUEST_SESSION_KEY, session_id)
        except GuestStorageError:
            logger.warning("Unable to persist guest session id", exc_info=True)
            return session_id
        self._fallback_session_id = None
        return session_id

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{self._clock().to_millis()}_{secrets.token_hex(4)}"

    def _default_state(self) -> LocalWork:
        return LocalWork(session_id=self.session_id)

    def get_guest_work(self) -> LocalWork:
        """Return the stored work, or an empty record when absent or unreadable."""
        try:
            raw = self._storage.get_item(GUEST_STORAGE_KEY)
        except GuestStorageError:
            logger.error("Error loading guest work", exc_info=True)
            return self._default_state()
        if not raw:
            return self._default_state()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("guest work record must be a JSON object")
            return LocalWork.from_record(data, session_id=self.session_id)
        except (ValueError, TypeError):
            logger.error("Discarding unreadable guest work record", exc_info=True)
            return self._default_state()

    def _write(self, work: LocalWork) -> None:
        self._storage.set_item(GUEST_STORAGE_KEY, json.dumps(work.to_record()))

    def save_guest_work(self, work: LocalWork) -> StoreResult:
        """Persist *work*, stamping the modification time and session id."""
        work.last_modified = self._clock()
        work.session_id = self.session_id
        try:
            self._write(work)
            return StoreResult.ok()
        except StorageQuotaExceededError:
            logger.warning("Guest storage quota exceeded; trimming to retention limits")
            self._trim(work)
            try:
                self._write(work)
            except GuestStorageError:
                logger.error("Guest work still exceeds storage after trimming", exc_info=True)
                return StoreResult.failed("Storage quota exceeded")
            return StoreResult.ok()
        except (GuestStorageError, OSError) as exc:
            logger.error("Error saving guest work: %s", exc)
            return StoreResult.failed(str(exc))

    def _trim(self, work: LocalWork) -> None:
        limits = self._retention
        work.prompts = _keep_last(work.prompts, limits.prompts)
        work.outputs = _keep_last(work.outputs, limits.outputs)
        work.chat_messages = _keep_last(work.chat_messages, limits.chat_messages)

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def add_prompt(self, data: Mapping[str, Any] | Prompt | None = None) -> Prompt:
        """Append a new guest prompt and return it."""
        record: dict[str, Any] = dict(
            data.to_record() if isinstance(data, Prompt) else (data or {})
        )
        record.update(
            {
                "id": self._new_id("guest_prompt"),
                "created_at": self._clock(),
                "owner": GUEST_OWNER,
                "is_guest": True,
            }
        )
        prompt = Prompt.from_record(record)
        work = self.get_guest_work()
        work.prompts.append(prompt)
        result = self.save_guest_work(work)
        if not result.success:
            logger.warning("Guest prompt %s was not persisted: %s", prompt.id, result.error)
        return prompt

    def update_prompt(
        self,
        prompt_id: str,
        updates: Mapping[str, Any],
        is_enhancement: bool = False,
    ) -> StoreResult:
        """Merge *updates* into a stored prompt; unknown ids report a failure."""
        work = self.get_guest_work()
        for index, existing in enumerate(work.prompts):
            if existing.id == prompt_id:
                break
        else:
            return StoreResult.failed("Prompt not found")

        allowed = {
            key: value for key, value in updates.items() if key not in _PROTECTED_PROMPT_FIELDS
        }
        allowed["updated_at"] = self._clock()
        work.prompts[index] = existing.merged(allowed)
        if is_enhancement:
            work.enhancement_count += 1
        return self.save_guest_work(work)

    def delete_prompt(self, prompt_id: str) -> StoreResult:
        """Remove a prompt; deleting an unknown id is not an error."""
        work = self.get_guest_work()
        work.prompts = [prompt for prompt in work.prompts if prompt.id != prompt_id]
        return self.save_guest_work(work)

    def get_prompts(self) -> list[Prompt]:
        return self.get_guest_work().prompts

    # ------------------------------------------------------------------
    # Outputs and chat
    # ------------------------------------------------------------------

    def add_output(self, prompt_id: str, data: Mapping[str, Any] | None = None) -> PromptOutput:
        """Record an output for *prompt_id* without checking the prompt exists."""
        record: dict[str, Any] = dict(data or {})
        record.update(
            {
                "id": self._new_id("guest_output"),
                "prompt_id": prompt_id,
                "created_at": self._clock(),
                "is_guest": True,
            }
        )
        output = PromptOutput.from_record(record)
        work = self.get_guest_work()
        work.outputs.append(output)
        result = self.save_guest_work(work)
        if not result.success:
            logger.warning("Guest output %s was not persisted: %s", output.id, result.error)
        return output

    def add_chat_message(self, data: Mapping[str, Any] | None = None) -> ChatMessage:
        record: dict[str, Any] = dict(data or {})
        record.update(
            {
                "id": self._new_id("guest_msg"),
                "timestamp": self._clock(),
                "is_guest": True,
            }
        )
        message = ChatMessage.from_record(record)
        work = self.get_guest_work()
        work.chat_messages.append(message)
        result = self.save_guest_work(work)
        if not result.success:
            logger.warning("Guest chat message %s was not persisted: %s", message.id, result.error)
        return message

    def get_outputs(self, prompt_id: str | None = None) -> list[PromptOutput]:
        outputs = self.get_guest_work().outputs
        if prompt_id:
            return [output for output in outputs if output.prompt_id == prompt_id]
        return outputs

    def get_chat_messages(self) -> list[ChatMessage]:
        return self.get_guest_work().chat_messages

    # ------------------------------------------------------------------
    # Summaries, export, and cleanup
    # ------------------------------------------------------------------

    def has_unsaved_work(self) -> bool:
        return not self.get_guest_work().is_empty()

    def get_work_summary(self) -> WorkSummary:
        work = self.get_guest_work()
        return WorkSummary(
            prompt_count=len(work.prompts),
            output_count=len(work.outputs),
            chat_count=len(work.chat_messages),
            enhancement_count=work.enhancement_count,
            last_modified=work.last_modified,
            session_id=work.session_id,
        )

    def export_for_migration(self) -> MigrationPayload:
        """Return a backend-shaped copy of the stored work without modifying it."""
        work = self.get_guest_work()
        prompts: list[dict[str, Any]] = []
        for prompt in work.prompts:
            outputs = [output for output in work.outputs if output.prompt_id == prompt.id]
            prompts.append(
                {
                    "title": prompt.title or UNTITLED_PROMPT,
                    "text": prompt.text or "",
                    "tags": list(prompt.tags),
                    "visibility": prompt.visibility or DEFAULT_VISIBILITY,
                    "outputs": [output.to_record() for output in outputs],
                    "created_at": timestamp_record(prompt.created_at),
                }
            )
        return MigrationPayload(
            prompts=prompts,
            chat_messages=list(work.chat_messages),
            metadata=MigrationMetadata(
                session_id=work.session_id,
                last_modified=work.last_modified,
                migrated_at=self._clock(),
            ),
        )

    def clear_guest_work(self) -> StoreResult:
        """Erase the stored record and the session identifier."""
        try:
            self._storage.remove_item(GUEST_STORAGE_KEY)
            self._session_storage.remove_item(GUEST_SESSION_KEY)
        except (GuestStorageError, OSError) as exc:
            logger.error("Error clearing guest work: %s", exc)
            return StoreResult.failed(str(exc))
        return StoreResult.ok()

    def cleanup_old_work(self) -> StoreResult:
        """Trim each collection to the retention limits and persist the result."""
        work = self.get_guest_work()
        self._trim(work)
        return self.save_guest_work(work)

    def get_storage_info(self) -> StorageInfo:
        try:
            raw = self._storage.get_item(GUEST_STORAGE_KEY) or ""
        except GuestStorageError:
            logger.warning("Unable to read guest storage size", exc_info=True)
            raw = ""
        work = self.get_guest_work()
        return StorageInfo(
            size_in_bytes=len(raw.encode("utf-8")),
            prompt_count=len(work.prompts),
            output_count=len(work.outputs),
            chat_count=len(work.chat_messages),
        )


__all__ = [
    "DEFAULT_RETENTION",
    "GUEST_SESSION_KEY",
    "GUEST_STORAGE_KEY",
    "GuestStateManager",
    "RetentionLimits",
]
