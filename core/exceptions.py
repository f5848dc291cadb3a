"""Common exception classes for the core package.

All exceptions ultimately inherit from :class:`PrismError`, allowing callers to
catch a single base class for any guest-workspace failure while still
distinguishing individual error categories when needed.

Several of these never escape the public API: the local work store converts
storage failures into :class:`~models.guest_work.StoreResult` values and the
rate limiter converts counter-store failures into fail-open results. They are
still defined here so the storage boundary and the counter boundary can signal
them explicitly.

Updates:
  v0.4.1 - 2026-10-18 - Drop the unused prompt lookup error; unknown ids are StoreResults.
  v0.4.0 - 2026-09-21 - Add authentication and enhancement availability errors for API handlers.
  v0.3.0 - 2026-09-12 - Add rate limit exception hierarchy.
  v0.2.0 - 2026-09-05 - Add migration and sign-in errors for the save gate.
  v0.1.0 - 2026-08-30 - Created module; guest storage errors.
"""

from __future__ import annotations


class PrismError(Exception):
    """Base exception for Prism guest workspace failures."""


# ---------------------------------------------------------------------------
# Guest work storage
# ---------------------------------------------------------------------------


class GuestStateError(PrismError):
    """Base class for local guest work failures."""


class GuestStorageError(GuestStateError):
    """Raised by a storage backend when a read or write fails."""


class StorageQuotaExceededError(GuestStorageError):
    """Raised by a storage backend when a write would exceed its quota."""


class DemoPromptNotFoundError(GuestStateError):
    """Raised when a demo prompt is missing from the session copy."""


# ---------------------------------------------------------------------------
# Save gate and migration
# ---------------------------------------------------------------------------


class MigrationError(PrismError):
    """Raised when guest work cannot be exported for migration."""


class SignInError(PrismError):
    """Raised by identity providers when a sign-in attempt fails."""


class AuthenticationError(PrismError):
    """Raised when a request carries a missing or invalid identity token."""


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class RateLimitError(PrismError):
    """Base class for rate limiting failures."""


class RateLimitStoreError(RateLimitError):
    """Raised when the remote counter store cannot be reached."""


class EnhancementUnavailableError(PrismError):
    """Raised when prompt enhancement is requested without an enhancer configured."""


__all__ = [
    "AuthenticationError",
    "DemoPromptNotFoundError",
    "EnhancementUnavailableError",
    "GuestStateError",
    "GuestStorageError",
    "MigrationError",
    "PrismError",
    "RateLimitError",
    "RateLimitStoreError",
    "SignInError",
    "StorageQuotaExceededError",
]
