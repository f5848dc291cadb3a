"""Configuration helpers for Prism.

Updates: v0.2.0 - 2026-09-12 - Expose default rate limit policies.
Updates: v0.1.0 - 2026-08-30 - Expose settings loader and configuration error types.
"""

from .settings import (
    DEFAULT_APP_BASE_URL,
    DEFAULT_RATE_LIMIT_POLICIES,
    DEFAULT_STORAGE_DIR,
    DEFAULT_STORAGE_QUOTA_BYTES,
    PrismSettings,
    SettingsError,
    load_settings,
)

__all__ = [
    "DEFAULT_APP_BASE_URL",
    "DEFAULT_RATE_LIMIT_POLICIES",
    "DEFAULT_STORAGE_DIR",
    "DEFAULT_STORAGE_QUOTA_BYTES",
    "PrismSettings",
    "SettingsError",
    "load_settings",
]
