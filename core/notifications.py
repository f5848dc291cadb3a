"""Visitor-facing notices for the guest workspace.

Sign-in failures and migration progress are surfaced to the visitor as notices
rather than raised. UI layers subscribe to a :class:`NoticeCenter`; the CLI and
tests read its bounded history.

Updates:
  v0.3.0 - 2026-10-18 - Let tracked tasks report partial failures through ``TaskProgress``.
  v0.2.0 - 2026-09-12 - Add ``notify`` helper used by the save gate for sign-in alerts.
  v0.1.0 - 2026-09-05 - Introduce notice hub with migration task tracking.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from models.timestamp import DocumentTimestamp

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("prism.notifications")


class NoticeLevel(str, Enum):
    """Severity shown next to a notice."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NoticeStatus(str, Enum):
    """Lifecycle stage of the task a notice belongs to."""
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ALERT = "alert"


@dataclass(slots=True)
class Notice:
    """Payload delivered to notice subscribers."""
    id: uuid.UUID
    title: str
    message: str
    level: NoticeLevel
    status: NoticeStatus
    timestamp: DocumentTimestamp = field(default_factory=DocumentTimestamp.now)
    task_id: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "message": self.message,
            "level": self.level.value,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "task_id": self.task_id,
            "duration_ms": self.duration_ms,
            "metadata": dict(self.metadata),
        }


@dataclass(slots=True)
class TaskProgress:
    """Outcome of a tracked task, filled in by the block it wraps."""
    message: str | None = None
    level: NoticeLevel = NoticeLevel.SUCCESS
    failed: bool = False

    def succeed(self, message: str) -> None:
        self.message = message
        self.level = NoticeLevel.SUCCESS
        self.failed = False

    def fail(self, message: str, *, level: NoticeLevel = NoticeLevel.ERROR) -> None:
        self.message = message
        self.level = level
        self.failed = True


class NoticeSubscription:
    """Disposable handle that removes its callback when closed."""
    def __init__(self, center: NoticeCenter, callback: Callable[[Notice], None]) -> None:
        self._center = center
        self._callback = callback
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._center.unsubscribe(self._callback)

    def __enter__(self) -> NoticeSubscription:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class NoticeCenter:
    """Thread-safe publish/subscribe hub for visitor notices."""
    def __init__(self, history_limit: int = 100) -> None:
        self._subscribers: list[Callable[[Notice], None]] = []
        self._lock = threading.RLock()
        self._history: deque[Notice] = deque(maxlen=history_limit)

    def subscribe(self, callback: Callable[[Notice], None]) -> NoticeSubscription:
        """Register *callback* to receive future notices."""
        with self._lock:
            self._subscribers.append(callback)
        return NoticeSubscription(self, callback)

    def unsubscribe(self, callback: Callable[[Notice], None]) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    def publish(self, notice: Notice) -> None:
        """Deliver *notice* to all registered subscribers."""
        with self._lock:
            self._history.append(notice)
            subscribers = list(self._subscribers)

        logger.debug(
            "Notice event",
            extra={
                "title": notice.title,
                "status": notice.status.value,
                "level": notice.level.value,
                "task_id": notice.task_id,
            },
        )

        for callback in subscribers:
            try:
                callback(notice)
            except Exception:  # pragma: no cover - subscriber failures must not cascade
                logger.exception("Notice subscriber raised an exception")

    def notify(
        self,
        title: str,
        message: str,
        *,
        level: NoticeLevel = NoticeLevel.INFO,
        metadata: dict[str, Any] | None = None,
    ) -> Notice:
        """Publish a standalone alert and return it."""
        notice = Notice(
            id=uuid.uuid4(),
            title=title,
            message=message,
            level=level,
            status=NoticeStatus.ALERT,
            metadata=dict(metadata or {}),
        )
        self.publish(notice)
        return notice

    def history(self) -> tuple[Notice, ...]:
        """Return a snapshot of stored notices."""
        with self._lock:
            return tuple(self._history)

    @contextmanager
    def track_task(
        self,
        title: str,
        start_message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[TaskProgress]:
        """Publish a STARTED notice, then one closing notice for the wrapped block.

        The block reports its outcome through the yielded :class:`TaskProgress`.
        A block that raises closes the task as FAILED and the exception propagates.
        """
        task_id = f"task:{uuid.uuid4()}"
        details = dict(metadata or {})
        progress = TaskProgress()
        started_at = time.perf_counter()
        self.publish(
            Notice(
                id=uuid.uuid4(),
                title=title,
                message=start_message,
                level=NoticeLevel.INFO,
                status=NoticeStatus.STARTED,
                task_id=task_id,
                metadata=details,
            )
        )

        try:
            yield progress
        except Exception as exc:
            progress.fail(f"{title} failed: {exc}")
            raise
        except BaseException:
            progress.fail(f"{title} was interrupted")
            raise
        finally:
            self.publish(
                Notice(
                    id=uuid.uuid4(),
                    title=title,
                    message=progress.message or f"{title} finished",
                    level=progress.level,
                    status=NoticeStatus.FAILED if progress.failed else NoticeStatus.SUCCEEDED,
                    task_id=task_id,
                    duration_ms=int((time.perf_counter() - started_at) * 1000),
                    metadata=details,
                )
            )


__all__ = [
    "Notice",
    "NoticeCenter",
    "NoticeLevel",
    "NoticeStatus",
    "NoticeSubscription",
    "TaskProgress",
]
