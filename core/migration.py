"""One-shot transfer of guest work into authenticated storage.

Exported prompts are persisted one at a time through an injected coroutine; the
error list follows the order of the local prompts. Local work is cleared only
when every prompt migrated.

Updates:
  v0.2.0 - 2026-09-09 - Report export failures as MigrationError entries.
  v0.1.0 - 2026-09-05 - Initial sequential migration routine.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from models.guest_work import MigrationResult

from .exceptions import MigrationError

if TYPE_CHECKING:
    from .guest_state import GuestStateManager

logger = logging.getLogger("prism.migration")

PersistFn = Callable[[str, dict[str, Any], str | None], Awaitable[None]]


async def migrate_guest_work(
    store: GuestStateManager,
    user_id: str,
    team_id: str | None,
    persist_fn: PersistFn,
) -> MigrationResult:
    """Persist every local prompt for *user_id* and report the outcome.

    No backend call is made when there is nothing to migrate. Individual
    failures are collected without stopping the remaining prompts; successfully
    migrated prompts are not rolled back.
    """
    try:
        payload = store.export_for_migration()
    except (ValueError, TypeError) as exc:
        logger.exception("Unable to export guest work for migration")
        error = MigrationError(f"Unable to export guest work: {exc}")
        return MigrationResult(success=False, errors=[error], error=str(error))

    if not payload.prompts:
        logger.debug("No guest prompts to migrate for session %s", payload.metadata.session_id)
        return MigrationResult(success=True, migrated_count=0, metadata=payload.metadata)

    migrated = 0
    errors: list[Exception] = []
    for position, prompt_data in enumerate(payload.prompts, start=1):
        try:
            await persist_fn(user_id, prompt_data, team_id)
        except Exception as exc:  # noqa: BLE001 - per-prompt failures are collected
            logger.warning(
                "Failed to migrate guest prompt %d/%d (%s): %s",
                position,
                len(payload.prompts),
                prompt_data.get("title"),
                exc,
            )
            errors.append(exc)
        else:
            migrated += 1

    if migrated > 0 and not errors:
        cleared = store.clear_guest_work()
        if not cleared.success:
            logger.error("Migrated guest work but could not clear it: %s", cleared.error)
    else:
        logger.info(
            "Keeping guest work for retry (migrated=%d, errors=%d)", migrated, len(errors)
        )

    logger.info(
        "Guest migration for %s finished: %d migrated, %d failed",
        user_id,
        migrated,
        len(errors),
    )
    return MigrationResult(
        success=not errors,
        migrated_count=migrated,
        errors=errors,
        metadata=payload.metadata,
    )


__all__ = ["PersistFn", "migrate_guest_work"]
