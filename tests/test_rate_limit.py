"""Tests for the fixed-window rate limiter.

Updates:
  v0.3.0 - 2026-10-18 - Cover pipelined counting with EXPIRE NX.
  v0.2.0 - 2026-09-20 - Cover response headers and limiter selection.
  v0.1.0 - 2026-09-12 - Initial window counting and fail-open coverage.
"""

from __future__ import annotations

import pytest
from conftest import FailingRedis, FakeRedis

from config import PrismSettings
from core.exceptions import RateLimitStoreError
from core.rate_limit import (
    DEFAULT_POLICIES,
    AllowAllRateLimiter,
    RateLimitPolicy,
    RedisRateLimiter,
    bucket_key,
    build_rate_limiter,
    check_rate_limit,
    resolve_policies,
)


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_counts_within_window_then_blocks(fake_redis: FakeRedis) -> None:
    clock = _Clock(1_000.4)
    limiter = RedisRateLimiter(fake_redis, clock=clock)

    results = [limiter.hit("user-1", "enhance", 3, 60) for _ in range(4)]

    assert [result.allowed for result in results] == [True, True, True, False]
    assert [result.remaining for result in results] == [2, 1, 0, 0]
    assert [result.count for result in results] == [1, 2, 3, 4]
    # floor(1000.4) = 1000; bucket 16 ends at 1020.
    assert all(result.reset_in == 20 for result in results)


def test_key_layout_and_expiry_set_once(fake_redis: FakeRedis) -> None:
    clock = _Clock(125.0)
    limiter = RedisRateLimiter(fake_redis, clock=clock)

    limiter.hit("user-1", "send-invite", 10, 60)
    fake_redis.expirations[bucket_key("send-invite", "user-1", 2)] = 37
    clock.now = 130.0
    limiter.hit("user-1", "send-invite", 10, 60)

    key = bucket_key("send-invite", "user-1", 2)
    assert key == "rl:send-invite:user-1:2"
    assert fake_redis.counts == {key: 2}
    # NX leaves an existing TTL alone, so the window does not slide.
    assert fake_redis.expirations == {key: 37}


def test_bucket_missing_a_ttl_gets_one_on_next_hit(fake_redis: FakeRedis) -> None:
    limiter = RedisRateLimiter(fake_redis, clock=_Clock(125.0))
    key = bucket_key("enhance", "user-1", 2)
    fake_redis.counts[key] = 1

    result = limiter.hit("user-1", "enhance", 10, 60)

    assert result.count == 2
    assert fake_redis.expirations == {key: 120}


def test_new_window_resets_count(fake_redis: FakeRedis) -> None:
    clock = _Clock(59.0)
    limiter = RedisRateLimiter(fake_redis, clock=clock)
    assert limiter.hit("user-1", "enhance", 1, 60).allowed
    assert not limiter.hit("user-1", "enhance", 1, 60).allowed

    clock.now = 60.0
    result = limiter.hit("user-1", "enhance", 1, 60)

    assert result.allowed
    assert result.reset_in == 60


def test_identities_and_endpoints_are_independent(fake_redis: FakeRedis) -> None:
    limiter = RedisRateLimiter(fake_redis, clock=_Clock(0.0))

    limiter.hit("user-1", "enhance", 1, 60)

    assert limiter.hit("user-2", "enhance", 1, 60).allowed
    assert limiter.hit("user-1", "send-invite", 1, 60).allowed


def test_store_failure_fails_open() -> None:
    limiter = RedisRateLimiter(FailingRedis(), clock=_Clock(10.0))

    result = limiter.hit("user-1", "enhance", 5, 60)

    assert result.allowed
    assert result.remaining == 5
    assert result.reset_in == 60
    assert result.count == 0


def test_store_failure_is_wrapped_in_store_error() -> None:
    limiter = RedisRateLimiter(FailingRedis(), clock=_Clock(10.0))

    with pytest.raises(RateLimitStoreError, match="rl:enhance:user-1:0") as excinfo:
        limiter._increment("rl:enhance:user-1:0", 120)

    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_check_rate_limit_headers_and_message(fake_redis: FakeRedis) -> None:
    limiter = RedisRateLimiter(fake_redis, clock=_Clock(30.0))
    policy = RateLimitPolicy(max_requests=1, window_seconds=60)

    allowed = check_rate_limit(limiter, "user-1", "enhance", policy)
    blocked = check_rate_limit(limiter, "user-1", "enhance", policy)

    assert allowed.allowed
    assert allowed.headers == {
        "X-RateLimit-Limit": "1",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": "30",
    }
    assert "Retry-After" not in allowed.headers
    assert allowed.error_code is None

    assert not blocked.allowed
    assert blocked.error_code == "RATE_LIMITED"
    assert blocked.headers["Retry-After"] == "30"
    assert blocked.message == (
        "Too many requests. You have used all 1 calls allowed in 60 seconds. "
        "Please wait 30 seconds and try again."
    )


def test_allow_all_limiter() -> None:
    result = AllowAllRateLimiter().hit("user-1", "enhance", 20, 60)

    assert result.allowed
    assert result.remaining == 20
    assert result.count == 0


def test_policy_validation() -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(max_requests=0, window_seconds=60)
    with pytest.raises(ValueError):
        RateLimitPolicy(max_requests=1, window_seconds=0)


def test_resolve_policies_merges_overrides() -> None:
    policies = resolve_policies(
        {"enhance": {"max_requests": 5}, "export": {"max_requests": 2, "window_seconds": 30}}
    )

    assert policies["enhance"] == RateLimitPolicy(max_requests=5, window_seconds=60)
    assert policies["export"] == RateLimitPolicy(max_requests=2, window_seconds=30)
    assert policies["send-invite"] == DEFAULT_POLICIES["send-invite"]


def test_build_rate_limiter_selection(fake_redis: FakeRedis, settings: PrismSettings) -> None:
    assert isinstance(build_rate_limiter(settings), AllowAllRateLimiter)
    assert isinstance(build_rate_limiter(None), AllowAllRateLimiter)
    assert isinstance(build_rate_limiter(settings, client=fake_redis), RedisRateLimiter)


def test_build_rate_limiter_uses_redis_dsn(
    settings: PrismSettings,
    monkeypatch: pytest.MonkeyPatch,
    fake_redis: FakeRedis,
) -> None:
    seen: list[str] = []

    def _from_url(url: str) -> FakeRedis:
        seen.append(url)
        return fake_redis

    monkeypatch.setattr("core.rate_limit.redis.from_url", _from_url)
    configured = settings.model_copy(update={"redis_dsn": "redis://localhost:6379/0"})

    limiter = build_rate_limiter(configured)

    assert isinstance(limiter, RedisRateLimiter)
    assert seen == ["redis://localhost:6379/0"]
