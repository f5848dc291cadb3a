"""Save gate deciding when a guest must sign up before an action proceeds.

The gate walks a small state machine per pending action::

    IDLE -> PENDING_SIGNUP -> MIGRATING -> IDLE
                           \\-> IDLE (continue without saving)

A guarded action records its continuation and a trigger describing why the
upsell was shown. A successful sign-in migrates local work exactly once for
that pending action, runs the continuation, and returns to ``IDLE``. A failed
sign-in publishes an error notice and keeps the pending action for retry.

Updates:
  v0.4.0 - 2026-10-18 - Track migration as a notice task; honour actions queued mid sign-in.
  v0.3.0 - 2026-09-16 - Resolve the migration team through an injected callable.
  v0.2.0 - 2026-09-12 - Publish sign-in failures and migration results as notices.
  v0.1.0 - 2026-09-05 - Initial save gate state machine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from .migration import PersistFn, migrate_guest_work
from .notifications import NoticeCenter, NoticeLevel

if TYPE_CHECKING:
    from models.guest_work import MigrationResult

    from .guest_state import GuestStateManager

logger = logging.getLogger("prism.save_gate")

Continuation = Callable[[], None]
TeamResolver = Callable[[str], str | None]


class SaveGateState(str, Enum):
    """Lifecycle of the pending guarded action."""
    IDLE = "idle"
    PENDING_SIGNUP = "pending_signup"
    MIGRATING = "migrating"


class SaveTrigger(str, Enum):
    """Reason the signup upsell was shown."""
    PROMPT_LIMIT = "prompt_limit"
    FIRST_ENHANCEMENT = "first_enhancement"
    EXPORT_ATTEMPT = "export_attempt"
    SAVE_ATTEMPT = "save_attempt"
    INVITE_ATTEMPT = "invite_attempt"


NON_BLOCKING_ACTIONS = frozenset(
    {
        "view_demo",
        "copy_demo",
        "duplicate_demo",
        "edit_guest_prompt",
        "delete_guest_prompt",
    }
)

_ALWAYS_GUARDED: dict[str, SaveTrigger] = {
    "export_prompts": SaveTrigger.EXPORT_ATTEMPT,
    "save_prompt": SaveTrigger.SAVE_ATTEMPT,
    "save_workspace": SaveTrigger.SAVE_ATTEMPT,
    "persist_work": SaveTrigger.SAVE_ATTEMPT,
    "invite_member": SaveTrigger.INVITE_ATTEMPT,
    "create_team": SaveTrigger.INVITE_ATTEMPT,
}


class IdentityProvider(Protocol):
    """Boundary to the external authentication provider."""

    def current_user_id(self) -> str | None:
        """Return the signed-in user id, or ``None`` for guests."""
        ...

    async def sign_in(self) -> str:
        """Run the provider's sign-in flow and return the new user id.

        Implementations raise :class:`~core.exceptions.SignInError` on failure.
        """
        ...


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Outcome of :meth:`SaveGate.check_save_required`."""

    proceeded: bool
    trigger: SaveTrigger | None = None
    message: str | None = None
    prompt_count: int = 0


@dataclass(slots=True)
class _PendingAction:
    continuation: Continuation | None
    decision: GateDecision
    migration_started: bool = False


class SaveGate:
    """Intercept guest actions and drive signup, migration and continuation."""

    def __init__(
        self,
        store: GuestStateManager,
        identity: IdentityProvider,
        persist_fn: PersistFn,
        *,
        notices: NoticeCenter | None = None,
        team_resolver: TeamResolver | None = None,
        prompt_limit_threshold: int = 3,
    ) -> None:
        self._store = store
        self._identity = identity
        self._persist_fn = persist_fn
        self._notices = notices or NoticeCenter()
        self._team_resolver = team_resolver
        self._prompt_limit_threshold = prompt_limit_threshold
        self._state = SaveGateState.IDLE
        self._pending: _PendingAction | None = None
        self._last_migration: MigrationResult | None = None

    @property
    def state(self) -> SaveGateState:
        return self._state

    @property
    def pending_decision(self) -> GateDecision | None:
        return self._pending.decision if self._pending else None

    @property
    def last_migration(self) -> MigrationResult | None:
        return self._last_migration

    @property
    def is_guest(self) -> bool:
        return self._identity.current_user_id() is None

    def _trigger_for(self, action: str) -> GateDecision | None:
        summary = self._store.get_work_summary()
        count = summary.prompt_count
        if action == "create_prompt" and count >= self._prompt_limit_threshold:
            return GateDecision(
                proceeded=False,
                trigger=SaveTrigger.PROMPT_LIMIT,
                message=f"You've created {count} prompts",
                prompt_count=count,
            )
        if action == "enhance_prompt" and summary.enhancement_count == 0:
            return GateDecision(
                proceeded=False,
                trigger=SaveTrigger.FIRST_ENHANCEMENT,
                message="Save your enhanced prompts",
                prompt_count=count,
            )
        trigger = _ALWAYS_GUARDED.get(action)
        if trigger is None:
            return None
        messages = {
            SaveTrigger.EXPORT_ATTEMPT: "Save before exporting",
            SaveTrigger.SAVE_ATTEMPT: "Sign up to save your work",
            SaveTrigger.INVITE_ATTEMPT: "Sign up to invite your team",
        }
        return GateDecision(
            proceeded=False,
            trigger=trigger,
            message=messages[trigger],
            prompt_count=count,
        )

    def check_save_required(
        self,
        action: str,
        on_proceed: Continuation | None = None,
    ) -> GateDecision:
        """Run *on_proceed* now, or hold it until the guest signs up.

        Authenticated visitors and non-blocking actions always proceed. While a
        migration is running, guarded actions are refused without replacing the
        pending action.
        """
        if not self.is_guest or action in NON_BLOCKING_ACTIONS:
            if on_proceed is not None:
                on_proceed()
            return GateDecision(proceeded=True)

        decision = self._trigger_for(action)
        if decision is None:
            if on_proceed is not None:
                on_proceed()
            return GateDecision(proceeded=True)

        if self._state is SaveGateState.MIGRATING:
            logger.info("Ignoring %s while guest work is migrating", action)
            return decision

        self._pending = _PendingAction(continuation=on_proceed, decision=decision)
        self._state = SaveGateState.PENDING_SIGNUP
        logger.info("Save gate triggered by %s (%s)", action, decision.trigger)
        return decision

    async def begin_signup(self) -> MigrationResult | None:
        """Sign in, migrate local work once, then run the pending continuation.

        If another guarded action replaced the pending one while sign-in was in
        progress, the newer action is the one migrated for and continued.

        Returns the migration result, or ``None`` when nothing was pending, the
        sign-in failed, or another call already migrated this pending action.
        """
        if self._state is not SaveGateState.PENDING_SIGNUP or self._pending is None:
            logger.debug("begin_signup called without a pending action")
            return None

        try:
            user_id = await self._identity.sign_in()
        except Exception as exc:  # noqa: BLE001 - external identity provider failure
            logger.warning("Sign-in from save gate failed: %s", exc)
            self._notices.notify(
                "Sign-in failed",
                f"We couldn't sign you in: {exc}. Your work is still here.",
                level=NoticeLevel.ERROR,
            )
            return None

        pending = self._pending
        if pending is None or pending.migration_started:
            logger.debug("Pending action already handled after sign-in")
            return None
        pending.migration_started = True
        self._state = SaveGateState.MIGRATING

        result: MigrationResult | None = None
        try:
            with self._notices.track_task(
                "Saving your work",
                "Moving your guest work into your account.",
                metadata={"user_id": user_id},
            ) as progress:
                team_id = self._team_resolver(user_id) if self._team_resolver else None
                result = await migrate_guest_work(self._store, user_id, team_id, self._persist_fn)
                if result.success:
                    progress.succeed(f"Saved {result.migrated_count} prompt(s) to your account.")
                else:
                    progress.fail(
                        f"Saved {result.migrated_count} prompt(s); {len(result.errors)} failed. "
                        "Your unsaved work is kept so you can retry.",
                        level=NoticeLevel.WARNING,
                    )
        finally:
            self._pending = None
            self._state = SaveGateState.IDLE

        self._last_migration = result
        if pending.continuation is not None:
            pending.continuation()
        return result

    def continue_without_saving(self) -> None:
        """Drop the pending action without running it; local work is kept."""
        if self._state is not SaveGateState.PENDING_SIGNUP:
            return
        self._pending = None
        self._state = SaveGateState.IDLE

    def close(self) -> None:
        self.continue_without_saving()


__all__ = [
    "Continuation",
    "GateDecision",
    "IdentityProvider",
    "NON_BLOCKING_ACTIONS",
    "SaveGate",
    "SaveGateState",
    "SaveTrigger",
    "TeamResolver",
]
