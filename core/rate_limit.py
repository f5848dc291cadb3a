"""Fixed-window request limiting backed by a Redis counter.

Each call increments ``rl:<endpoint>:<identity>:<bucket>`` where ``bucket`` is
``floor(now / window)``. The increment and an ``EXPIRE NX`` of twice the
window run in one transaction, so every bucket key carries a TTL and stale
buckets clean themselves up. ``NX`` needs Redis 7.0 or newer.

Counter store failures fail open: the request is allowed with the full
allowance and the failure is logged. Deployments without a counter store use
:class:`AllowAllRateLimiter`, selected by :func:`build_rate_limiter`.

Updates:
  v0.4.0 - 2026-10-18 - Count and expire in one pipeline; raise RateLimitStoreError internally.
  v0.3.0 - 2026-09-20 - Add response header decisions for API handlers.
  v0.2.0 - 2026-09-14 - Select the limiter implementation from settings at startup.
  v0.1.0 - 2026-09-12 - Initial Redis fixed-window limiter.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, cast

import redis

from .exceptions import RateLimitStoreError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from config import PrismSettings

logger = logging.getLogger("prism.rate_limit")

RATE_LIMITED_CODE = "RATE_LIMITED"


class CounterPipelineProtocol(Protocol):
    """Subset of the redis-py pipeline used to count a request."""

    def incr(self, name: str, amount: int = 1) -> Any:
        ...

    def expire(self, name: str, time: int, nx: bool = False) -> Any:
        ...

    def execute(self) -> list[Any]:
        """Send the queued commands as one MULTI/EXEC transaction."""
        ...

    def __enter__(self) -> CounterPipelineProtocol:
        ...

    def __exit__(self, *args: object) -> None:
        ...


class CounterStoreProtocol(Protocol):
    """Subset of redis-py client behaviour used by the limiter."""

    def pipeline(self) -> CounterPipelineProtocol:
        """Return a transactional pipeline."""
        ...


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    """Maximum number of calls allowed per window for one endpoint."""

    max_requests: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")


DEFAULT_POLICIES: dict[str, RateLimitPolicy] = {
    "enhance": RateLimitPolicy(max_requests=20, window_seconds=60),
    "send-invite": RateLimitPolicy(max_requests=10, window_seconds=60),
    "generate-invite-link": RateLimitPolicy(max_requests=10, window_seconds=60),
}


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of a single counted request."""

    allowed: bool
    remaining: int
    reset_in: int
    count: int


class RateLimiter(Protocol):
    """Capability interface implemented by every limiter."""

    def hit(
        self,
        identity: str,
        endpoint: str,
        max_requests: int,
        window_seconds: int,
    ) -> RateLimitResult:
        """Count one request and report whether it is within the limit."""
        ...


def bucket_key(endpoint: str, identity: str, bucket: int) -> str:
    return f"rl:{endpoint}:{identity}:{bucket}"


class RedisRateLimiter:
    """Fixed-window limiter counting requests in Redis."""

    def __init__(
        self,
        client: CounterStoreProtocol,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._clock = clock

    def _increment(self, key: str, ttl: int) -> int:
        """Count one hit on *key* and make sure the key carries a TTL.

        ``EXPIRE ... NX`` only sets a TTL on keys without one, so a bucket whose
        first expiry was lost gets it on the next hit without the window sliding.
        """
        try:
            with self._client.pipeline() as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl, nx=True)
                count, _ = pipe.execute()
        except Exception as exc:  # noqa: BLE001 - external dependency failure
            raise RateLimitStoreError(f"Unable to count request on {key}: {exc}") from exc
        return int(count)

    def hit(
        self,
        identity: str,
        endpoint: str,
        max_requests: int,
        window_seconds: int,
    ) -> RateLimitResult:
        now = math.floor(self._clock())
        bucket = now // window_seconds
        key = bucket_key(endpoint, identity, bucket)
        reset_in = (bucket + 1) * window_seconds - now

        try:
            count = self._increment(key, window_seconds * 2)
        except RateLimitStoreError as exc:
            logger.error("Rate limit store error; failing open: %s", exc)
            return RateLimitResult(
                allowed=True,
                remaining=max_requests,
                reset_in=window_seconds,
                count=0,
            )

        return RateLimitResult(
            allowed=count <= max_requests,
            remaining=max(0, max_requests - count),
            reset_in=reset_in,
            count=count,
        )


class AllowAllRateLimiter:
    """Limiter used when no counter store is configured."""

    def hit(
        self,
        identity: str,
        endpoint: str,
        max_requests: int,
        window_seconds: int,
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            remaining=max_requests,
            reset_in=window_seconds,
            count=0,
        )


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Limiter result plus the response headers an API handler should send."""

    result: RateLimitResult
    policy: RateLimitPolicy
    headers: dict[str, str] = field(default_factory=dict)
    message: str | None = None

    @property
    def allowed(self) -> bool:
        return self.result.allowed

    @property
    def error_code(self) -> str | None:
        return None if self.result.allowed else RATE_LIMITED_CODE


def check_rate_limit(
    limiter: RateLimiter,
    identity: str,
    endpoint: str,
    policy: RateLimitPolicy,
) -> RateLimitDecision:
    """Count a request and build the informational headers for the response."""
    result = limiter.hit(identity, endpoint, policy.max_requests, policy.window_seconds)
    headers = {
        "X-RateLimit-Limit": str(policy.max_requests),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_in),
    }
    if result.allowed:
        return RateLimitDecision(result=result, policy=policy, headers=headers)

    headers["Retry-After"] = str(result.reset_in)
    message = (
        f"Too many requests. You have used all {policy.max_requests} calls allowed in "
        f"{policy.window_seconds} seconds. Please wait {result.reset_in} seconds and try again."
    )
    logger.info("Rate limit exceeded for %s on %s", identity, endpoint)
    return RateLimitDecision(result=result, policy=policy, headers=headers, message=message)


def resolve_policies(
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, RateLimitPolicy]:
    """Merge configured ``{endpoint: {max_requests, window_seconds}}`` onto the defaults."""
    policies = dict(DEFAULT_POLICIES)
    for endpoint, raw in (overrides or {}).items():
        if isinstance(raw, RateLimitPolicy):
            policies[endpoint] = raw
            continue
        if not isinstance(raw, Mapping):
            raise ValueError(f"Rate limit policy for {endpoint!r} must be a mapping")
        base = policies.get(endpoint)
        policies[endpoint] = RateLimitPolicy(
            max_requests=int(raw.get("max_requests", base.max_requests if base else 0)),
            window_seconds=int(raw.get("window_seconds", base.window_seconds if base else 0)),
        )
    return policies


def _resolve_redis_client(redis_dsn: str | None) -> tuple[CounterStoreProtocol | None, str | None]:
    """Create a Redis client when a DSN is configured."""
    if not redis_dsn:
        return None, "Rate limiting disabled: PRISM_REDIS_DSN is not set."
    from_url = cast("Callable[[str], CounterStoreProtocol]", redis.from_url)
    try:
        client = from_url(redis_dsn)
    except Exception as exc:  # noqa: BLE001 - external dependency failure
        return None, f"Rate limiting disabled: unable to configure the Redis client ({exc})."
    return client, None


def build_rate_limiter(
    settings: PrismSettings | None = None,
    *,
    client: CounterStoreProtocol | None = None,
    clock: Callable[[], float] = time.time,
) -> RedisRateLimiter | AllowAllRateLimiter:
    """Return a Redis-backed limiter when possible, otherwise the allow-all stub."""
    if client is None:
        redis_dsn = settings.redis_dsn if settings is not None else None
        client, reason = _resolve_redis_client(redis_dsn)
        if client is None:
            logger.info(reason)
            return AllowAllRateLimiter()
    return RedisRateLimiter(client, clock=clock)


__all__ = [
    "AllowAllRateLimiter",
    "CounterPipelineProtocol",
    "CounterStoreProtocol",
    "DEFAULT_POLICIES",
    "RATE_LIMITED_CODE",
    "RateLimitDecision",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimiter",
    "RedisRateLimiter",
    "bucket_key",
    "build_rate_limiter",
    "check_rate_limit",
    "resolve_policies",
]
