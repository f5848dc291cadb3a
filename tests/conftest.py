"""Pytest configuration for shared test fixtures and environment hooks.

Updates:
  v0.3.0 - 2026-10-18 - Fake Redis pipelines with EXPIRE NX semantics.
  v0.2.0 - 2026-09-21 - Shared fake Redis client, identity provider, and service fixtures.
  v0.1.0 - 2026-08-30 - Isolate tests from PRISM_* environment variables and .env files.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from config import PrismSettings, load_settings
from core import (
    GuestServices,
    GuestStateManager,
    InMemoryStorage,
    build_guest_services,
)
from core.exceptions import SignInError
from models.timestamp import DocumentTimestamp


class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: int = 1_726_000_000) -> None:
        self.seconds = start

    def __call__(self) -> DocumentTimestamp:
        value = DocumentTimestamp(seconds=self.seconds, nanoseconds=0)
        self.seconds += 1
        return value


class FakePipeline:
    """Queues commands and applies them to a :class:`FakeRedis` on execute."""

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._commands: list[Callable[[], Any]] = []

    def __enter__(self) -> FakePipeline:
        return self

    def __exit__(self, *args: object) -> None:
        self._commands.clear()

    def incr(self, name: str, amount: int = 1) -> FakePipeline:
        self._commands.append(lambda: self._redis.incr(name, amount))
        return self

    def expire(self, name: str, time: int, nx: bool = False) -> FakePipeline:
        self._commands.append(lambda: self._redis.expire(name, time, nx=nx))
        return self

    def execute(self) -> list[Any]:
        if self._redis.fail_with is not None:
            raise self._redis.fail_with
        results = [command() for command in self._commands]
        self._commands.clear()
        return results


class FakeRedis:
    """In-memory stand-in for the redis-py calls the rate limiter makes."""

    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.expirations: dict[str, int] = {}
        self.fail_with: Exception | None = None

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    def incr(self, name: str, amount: int = 1) -> int:
        self.counts[name] = self.counts.get(name, 0) + amount
        return self.counts[name]

    def expire(self, name: str, time: int, nx: bool = False) -> bool:
        if nx and name in self.expirations:
            return False
        self.expirations[name] = time
        return True


class FailingRedis(FakeRedis):
    def __init__(self) -> None:
        super().__init__()
        self.fail_with = ConnectionError("redis unavailable")


class FakeIdentity:
    """Identity provider whose sign-in outcome is scripted by the test."""

    def __init__(self, user_id: str = "user-1") -> None:
        self.user_id: str | None = None
        self._next_user_id = user_id
        self.fail_with: Exception | None = None
        self.sign_in_calls = 0

    def current_user_id(self) -> str | None:
        return self.user_id

    async def sign_in(self) -> str:
        self.sign_in_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.user_id = self._next_user_id
        return self._next_user_id


class RecordingPersist:
    """Persist coroutine recording calls and failing on selected titles."""

    def __init__(self, fail_titles: set[str] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any], str | None]] = []
        self.fail_titles = fail_titles or set()

    async def __call__(self, user_id: str, data: dict[str, Any], team_id: str | None) -> None:
        self.calls.append((user_id, data, team_id))
        if data.get("title") in self.fail_titles:
            raise RuntimeError(f"backend rejected {data['title']}")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Remove PRISM_* variables and disable .env loading for every test."""
    for key in list(os.environ):
        if key.startswith("PRISM_") or key == "KV_URL":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PRISM_ENV_FILE", "")
    yield


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def session_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def guest_state(
    storage: InMemoryStorage,
    session_storage: InMemoryStorage,
    clock: SteppingClock,
) -> GuestStateManager:
    return GuestStateManager(storage, session_storage, clock=clock)


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture()
def failing_identity() -> FakeIdentity:
    provider = FakeIdentity()
    provider.fail_with = SignInError("popup closed")
    return provider


@pytest.fixture()
def settings(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> PrismSettings:
    monkeypatch.chdir(tmp_path)
    return load_settings(storage_dir=tmp_path / "guest", app_base_url="https://prism.test")


@pytest.fixture()
def services(
    settings: PrismSettings,
    storage: InMemoryStorage,
    session_storage: InMemoryStorage,
    fake_redis: FakeRedis,
    clock: SteppingClock,
) -> GuestServices:
    return build_guest_services(
        settings,
        storage=storage,
        session_storage=session_storage,
        redis_client=fake_redis,
        clock=clock,
    )
