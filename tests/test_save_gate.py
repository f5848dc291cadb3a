"""Tests for the guest save gate state machine.

Updates:
  v0.3.0 - 2026-10-18 - Cover migration task notices and actions queued during sign-in.
  v0.2.0 - 2026-09-16 - Cover team resolution and concurrent signup attempts.
  v0.1.0 - 2026-09-05 - Initial trigger and migration coverage.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from conftest import FakeIdentity, RecordingPersist

from core.guest_state import GuestStateManager
from core.notifications import NoticeCenter, NoticeLevel, NoticeStatus
from core.save_gate import SaveGate, SaveGateState, SaveTrigger


def _gate(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
    persist: RecordingPersist | None = None,
    **kwargs: Any,
) -> SaveGate:
    return SaveGate(guest_state, identity, persist or RecordingPersist(), **kwargs)


def test_authenticated_user_always_proceeds(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    identity.user_id = "user-1"
    gate = _gate(guest_state, identity)
    ran: list[str] = []

    decision = gate.check_save_required("export_prompts", lambda: ran.append("export"))

    assert decision.proceeded
    assert ran == ["export"]
    assert gate.state is SaveGateState.IDLE


def test_non_blocking_and_unguarded_actions_proceed(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    gate = _gate(guest_state, identity)
    ran: list[str] = []

    assert gate.check_save_required("copy_demo", lambda: ran.append("copy")).proceeded
    assert gate.check_save_required("create_prompt", lambda: ran.append("create")).proceeded

    assert ran == ["copy", "create"]
    assert gate.state is SaveGateState.IDLE


def test_prompt_limit_trigger(guest_state: GuestStateManager, identity: FakeIdentity) -> None:
    for index in range(3):
        guest_state.add_prompt({"title": f"p{index}"})
    gate = _gate(guest_state, identity)
    ran: list[str] = []

    decision = gate.check_save_required("create_prompt", lambda: ran.append("create"))

    assert not decision.proceeded
    assert decision.trigger is SaveTrigger.PROMPT_LIMIT
    assert decision.message == "You've created 3 prompts"
    assert decision.prompt_count == 3
    assert ran == []
    assert gate.state is SaveGateState.PENDING_SIGNUP
    assert gate.pending_decision == decision


def test_first_enhancement_trigger_only_once(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    gate = _gate(guest_state, identity)

    decision = gate.check_save_required("enhance_prompt")
    assert decision.trigger is SaveTrigger.FIRST_ENHANCEMENT

    gate.continue_without_saving()
    prompt = guest_state.add_prompt({"title": "p"})
    assert prompt.id is not None
    guest_state.update_prompt(prompt.id, {"text": "better"}, is_enhancement=True)

    assert gate.check_save_required("enhance_prompt").proceeded


@pytest.mark.parametrize(
    ("action", "trigger"),
    [
        ("export_prompts", SaveTrigger.EXPORT_ATTEMPT),
        ("save_prompt", SaveTrigger.SAVE_ATTEMPT),
        ("invite_member", SaveTrigger.INVITE_ATTEMPT),
    ],
)
def test_always_guarded_actions(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
    action: str,
    trigger: SaveTrigger,
) -> None:
    gate = _gate(guest_state, identity)

    decision = gate.check_save_required(action)

    assert decision.trigger is trigger
    assert decision.message


def test_continue_without_saving_drops_pending_action(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "keep me"})
    gate = _gate(guest_state, identity)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    gate.continue_without_saving()

    assert gate.state is SaveGateState.IDLE
    assert gate.pending_decision is None
    assert ran == []
    assert guest_state.has_unsaved_work()


@pytest.mark.asyncio()
async def test_signup_migrates_then_runs_continuation(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "One"})
    persist = RecordingPersist()
    notices = NoticeCenter()
    gate = _gate(
        guest_state,
        identity,
        persist,
        notices=notices,
        team_resolver=lambda uid: f"team-of-{uid}",
    )
    order: list[str] = []
    gate.check_save_required("save_prompt", lambda: order.append(f"saved:{len(persist.calls)}"))

    result = await gate.begin_signup()

    assert result is not None and result.success
    assert result.migrated_count == 1
    assert order == ["saved:1"]
    assert persist.calls[0][2] == "team-of-user-1"
    assert gate.state is SaveGateState.IDLE
    assert gate.last_migration is result
    assert not guest_state.has_unsaved_work()
    started, finished = notices.history()
    assert started.status is NoticeStatus.STARTED
    assert finished.status is NoticeStatus.SUCCEEDED
    assert finished.level is NoticeLevel.SUCCESS
    assert finished.message == "Saved 1 prompt(s) to your account."
    assert finished.task_id == started.task_id


@pytest.mark.asyncio()
async def test_failed_sign_in_keeps_pending_action(
    guest_state: GuestStateManager,
    failing_identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "One"})
    persist = RecordingPersist()
    notices = NoticeCenter()
    gate = _gate(guest_state, failing_identity, persist, notices=notices)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    result = await gate.begin_signup()

    assert result is None
    assert gate.state is SaveGateState.PENDING_SIGNUP
    assert ran == []
    assert persist.calls == []
    assert notices.history()[-1].title == "Sign-in failed"
    assert notices.history()[-1].level is NoticeLevel.ERROR

    failing_identity.fail_with = None
    retried = await gate.begin_signup()
    assert retried is not None and retried.success
    assert ran == ["save"]


@pytest.mark.asyncio()
async def test_partial_migration_still_runs_continuation(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "Good"})
    guest_state.add_prompt({"title": "Bad"})
    persist = RecordingPersist(fail_titles={"Bad"})
    notices = NoticeCenter()
    gate = _gate(guest_state, identity, persist, notices=notices)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    result = await gate.begin_signup()

    assert result is not None and not result.success
    assert ran == ["save"]
    assert guest_state.get_work_summary().prompt_count == 2
    finished = notices.history()[-1]
    assert finished.status is NoticeStatus.FAILED
    assert finished.level is NoticeLevel.WARNING
    assert "1 failed" in finished.message


@pytest.mark.asyncio()
async def test_concurrent_signups_migrate_once(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "One"})
    persist = RecordingPersist()
    gate = _gate(guest_state, identity, persist)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    results = await asyncio.gather(gate.begin_signup(), gate.begin_signup())

    assert sum(result is not None for result in results) == 1
    assert len(persist.calls) == 1
    assert ran == ["save"]


def test_guarded_action_refused_while_migrating(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    gate = _gate(guest_state, identity)
    gate.check_save_required("save_prompt")
    pending = gate.pending_decision
    gate._state = SaveGateState.MIGRATING

    decision = gate.check_save_required("export_prompts")

    assert not decision.proceeded
    assert gate.pending_decision == pending


@pytest.mark.asyncio()
async def test_begin_signup_without_pending_action(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    gate = _gate(guest_state, identity)

    assert await gate.begin_signup() is None
    assert identity.sign_in_calls == 0


class _SlowIdentity(FakeIdentity):
    """Identity provider whose sign-in waits until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self.waiting = asyncio.Event()

    async def sign_in(self) -> str:
        self.waiting.set()
        await self.release.wait()
        return await super().sign_in()


@pytest.mark.asyncio()
async def test_action_queued_during_sign_in_is_migrated_and_run(
    guest_state: GuestStateManager,
) -> None:
    guest_state.add_prompt({"title": "One"})
    identity = _SlowIdentity()
    persist = RecordingPersist()
    gate = _gate(guest_state, identity, persist)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    signup = asyncio.create_task(gate.begin_signup())
    await identity.waiting.wait()
    replaced = gate.check_save_required("export_prompts", lambda: ran.append("export"))
    identity.release.set()
    result = await signup

    assert replaced.trigger is SaveTrigger.EXPORT_ATTEMPT
    assert result is not None and result.success
    assert len(persist.calls) == 1
    assert ran == ["export"]
    assert gate.state is SaveGateState.IDLE
    assert gate.pending_decision is None


@pytest.mark.asyncio()
async def test_team_resolver_failure_closes_migration_task(
    guest_state: GuestStateManager,
    identity: FakeIdentity,
) -> None:
    guest_state.add_prompt({"title": "One"})
    persist = RecordingPersist()
    notices = NoticeCenter()

    def _no_team(user_id: str) -> str | None:
        raise LookupError(f"no team for {user_id}")

    gate = _gate(guest_state, identity, persist, notices=notices, team_resolver=_no_team)
    ran: list[str] = []
    gate.check_save_required("save_prompt", lambda: ran.append("save"))

    with pytest.raises(LookupError):
        await gate.begin_signup()

    finished = notices.history()[-1]
    assert finished.status is NoticeStatus.FAILED
    assert finished.level is NoticeLevel.ERROR
    assert "no team for user-1" in finished.message
    assert gate.state is SaveGateState.IDLE
    assert persist.calls == []
    assert ran == []
    assert guest_state.has_unsaved_work()
