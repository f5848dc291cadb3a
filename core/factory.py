"""Factories for constructing guest workspace services from validated settings.

Updates:
  v0.3.0 - 2026-09-21 - Resolve rate limit policies and expose them to API handlers.
  v0.2.0 - 2026-09-14 - Select the rate limiter implementation from the Redis DSN.
  v0.1.0 - 2026-09-05 - Build the guest state manager once at startup instead of a module singleton.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from models.timestamp import DocumentTimestamp

from .demo_session import DemoPromptSession
from .guest_state import GuestStateManager, RetentionLimits
from .notifications import NoticeCenter
from .rate_limit import (
    AllowAllRateLimiter,
    CounterStoreProtocol,
    RateLimitPolicy,
    RedisRateLimiter,
    build_rate_limiter,
    resolve_policies,
)
from .save_gate import IdentityProvider, SaveGate, TeamResolver
from .storage import JsonFileStorage, KeyValueStorage

if TYPE_CHECKING:  # pragma: no cover - typing only
    from collections.abc import Callable

    from config import PrismSettings

    from .migration import PersistFn

factory_logger = logging.getLogger("prism.factory")

LOCAL_STORAGE_FILENAME = "local_storage.json"
SESSION_STORAGE_FILENAME = "session_storage.json"


@dataclass(slots=True)
class GuestServices:
    """Long-lived services shared by the CLI and the API application."""

    settings: PrismSettings
    storage: KeyValueStorage
    session_storage: KeyValueStorage
    guest_state: GuestStateManager
    demo_session: DemoPromptSession
    rate_limiter: RedisRateLimiter | AllowAllRateLimiter
    policies: dict[str, RateLimitPolicy]
    notices: NoticeCenter = field(default_factory=NoticeCenter)

    def build_save_gate(
        self,
        identity: IdentityProvider,
        persist_fn: PersistFn,
        *,
        team_resolver: TeamResolver | None = None,
    ) -> SaveGate:
        """Return a save gate bound to this visitor's guest work."""
        return SaveGate(
            self.guest_state,
            identity,
            persist_fn,
            notices=self.notices,
            team_resolver=team_resolver,
            prompt_limit_threshold=self.settings.prompt_limit_threshold,
        )

    def policy_for(self, endpoint: str) -> RateLimitPolicy:
        try:
            return self.policies[endpoint]
        except KeyError as exc:
            raise KeyError(f"No rate limit policy configured for {endpoint!r}") from exc


def build_guest_services(
    settings: PrismSettings,
    *,
    storage: KeyValueStorage | None = None,
    session_storage: KeyValueStorage | None = None,
    redis_client: CounterStoreProtocol | None = None,
    notices: NoticeCenter | None = None,
    clock: Callable[[], DocumentTimestamp] = DocumentTimestamp.now,
) -> GuestServices:
    """Return fully wired guest services using *settings* and optional overrides."""
    if storage is None:
        storage = JsonFileStorage(
            settings.storage_dir / LOCAL_STORAGE_FILENAME,
            quota_bytes=settings.storage_quota_bytes,
        )
    if session_storage is None:
        session_storage = JsonFileStorage(settings.storage_dir / SESSION_STORAGE_FILENAME)

    retention = RetentionLimits(
        prompts=settings.retention_prompts,
        outputs=settings.retention_outputs,
        chat_messages=settings.retention_chat_messages,
    )
    guest_state = GuestStateManager(storage, session_storage, retention=retention, clock=clock)
    demo_session = DemoPromptSession(session_storage, clock=clock)

    rate_limiter = build_rate_limiter(settings, client=redis_client)
    factory_logger.debug("Rate limiter: %s", type(rate_limiter).__name__)

    return GuestServices(
        settings=settings,
        storage=storage,
        session_storage=session_storage,
        guest_state=guest_state,
        demo_session=demo_session,
        rate_limiter=rate_limiter,
        policies=resolve_policies(settings.rate_limit_policies),
        notices=notices or NoticeCenter(),
    )


__all__ = ["GuestServices", "build_guest_services"]
