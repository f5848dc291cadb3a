"""Tests for the visitor notice centre.

Updates:
  v0.2.0 - 2026-10-18 - Cover outcomes reported through ``TaskProgress``.
  v0.1.0 - 2026-09-05 - Initial subscription and history coverage.
"""

from __future__ import annotations

import pytest

from core.notifications import Notice, NoticeCenter, NoticeLevel, NoticeStatus


def test_tracked_task_closes_with_reported_outcome() -> None:
    center = NoticeCenter()
    seen: list[Notice] = []
    center.subscribe(seen.append)

    with center.track_task(
        "Saving your work",
        "Moving prompts",
        metadata={"user_id": "user-1"},
    ) as progress:
        progress.succeed("Saved 2 prompt(s)")

    started, closed = seen
    assert started.status is NoticeStatus.STARTED
    assert started.level is NoticeLevel.INFO
    assert closed.status is NoticeStatus.SUCCEEDED
    assert closed.message == "Saved 2 prompt(s)"
    assert closed.task_id == started.task_id
    assert closed.duration_ms is not None
    assert closed.metadata == {"user_id": "user-1"}


def test_tracked_task_without_outcome_uses_default_message() -> None:
    center = NoticeCenter()

    with center.track_task("Cleanup", "Removing old work"):
        pass

    closed = center.history()[-1]
    assert closed.status is NoticeStatus.SUCCEEDED
    assert closed.message == "Cleanup finished"


def test_tracked_task_partial_failure_keeps_chosen_level() -> None:
    center = NoticeCenter()

    with center.track_task("Saving your work", "Moving prompts") as progress:
        progress.fail("1 prompt failed", level=NoticeLevel.WARNING)

    closed = center.history()[-1]
    assert closed.status is NoticeStatus.FAILED
    assert closed.level is NoticeLevel.WARNING
    assert closed.message == "1 prompt failed"


def test_tracked_task_exception_is_published_and_reraised() -> None:
    center = NoticeCenter()

    with pytest.raises(RuntimeError, match="backend down"):
        with center.track_task("Saving your work", "Moving prompts"):
            raise RuntimeError("backend down")

    closed = center.history()[-1]
    assert closed.status is NoticeStatus.FAILED
    assert closed.level is NoticeLevel.ERROR
    assert closed.message == "Saving your work failed: backend down"
    assert len(center.history()) == 2


def test_subscription_can_be_closed() -> None:
    center = NoticeCenter()
    events: list[Notice] = []
    subscription = center.subscribe(events.append)
    subscription.close()

    center.notify("Silent", "nobody listens")

    assert events == []
    assert len(center.history()) == 1


def test_notify_publishes_alert_and_serialises() -> None:
    center = NoticeCenter()
    notice = center.notify("Sign-in failed", "try again", level=NoticeLevel.ERROR)

    payload = notice.to_dict()
    assert payload["status"] == "alert"
    assert payload["level"] == "error"
    assert payload["title"] == "Sign-in failed"
    assert center.history() == (notice,)


def test_history_is_bounded() -> None:
    center = NoticeCenter(history_limit=2)
    for index in range(3):
        center.notify(f"n{index}", "message")

    assert [notice.title for notice in center.history()] == ["n1", "n2"]
