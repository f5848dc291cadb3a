"""Core service layer for the Prism guest workspace.

Updates:
  v0.4.0 - 2026-09-21 - Export rate limit decisions and the service factory.
  v0.3.0 - 2026-09-12 - Export save gate and migration helpers.
  v0.2.0 - 2026-09-10 - Export demo catalog, classifier, and demo session.
  v0.1.0 - 2026-08-30 - Surface the guest state manager and storage backends.
"""

from .demo_content import (
    DemoStats,
    PromptBadge,
    can_delete_prompt,
    can_edit_prompt,
    can_save_prompt,
    duplicate_demo_to_user_prompt,
    get_demo_prompts,
    get_demo_stats,
    get_prompt_badge,
    is_demo_prompt,
)
from .demo_session import DemoPromptSession
from .exceptions import (
    AuthenticationError,
    DemoPromptNotFoundError,
    EnhancementUnavailableError,
    GuestStateError,
    GuestStorageError,
    MigrationError,
    PrismError,
    RateLimitError,
    RateLimitStoreError,
    SignInError,
    StorageQuotaExceededError,
)
from .factory import GuestServices, build_guest_services
from .guest_state import GuestStateManager, RetentionLimits
from .migration import PersistFn, migrate_guest_work
from .notifications import Notice, NoticeCenter, NoticeLevel, NoticeStatus
from .rate_limit import (
    AllowAllRateLimiter,
    RateLimitDecision,
    RateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    RedisRateLimiter,
    build_rate_limiter,
    check_rate_limit,
)
from .save_gate import GateDecision, IdentityProvider, SaveGate, SaveGateState, SaveTrigger
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage

__all__ = [
    "AllowAllRateLimiter",
    "AuthenticationError",
    "DemoPromptNotFoundError",
    "DemoPromptSession",
    "DemoStats",
    "EnhancementUnavailableError",
    "GateDecision",
    "GuestServices",
    "GuestStateError",
    "GuestStateManager",
    "GuestStorageError",
    "IdentityProvider",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "MigrationError",
    "Notice",
    "NoticeCenter",
    "NoticeLevel",
    "NoticeStatus",
    "PersistFn",
    "PrismError",
    "PromptBadge",
    "RateLimitDecision",
    "RateLimitError",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimitStoreError",
    "RateLimiter",
    "RedisRateLimiter",
    "RetentionLimits",
    "SaveGate",
    "SaveGateState",
    "SaveTrigger",
    "SignInError",
    "StorageQuotaExceededError",
    "build_guest_services",
    "build_rate_limiter",
    "can_delete_prompt",
    "can_edit_prompt",
    "can_save_prompt",
    "check_rate_limit",
    "duplicate_demo_to_user_prompt",
    "get_demo_prompts",
    "get_demo_stats",
    "get_prompt_badge",
    "is_demo_prompt",
    "migrate_guest_work",
]
