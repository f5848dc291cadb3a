"""Printable summaries for Prism configuration.

Updates:
  v0.1.1 - 2026-09-21 - Include API server and invite link settings.
  v0.1.0 - 2026-09-12 - Render storage, retention, and rate limit settings.
"""

from __future__ import annotations

from config import PrismSettings

from .utils import describe_path, mask_dsn


def print_settings_summary(settings: PrismSettings) -> None:
    """Emit a readable summary of the resolved configuration."""
    lines = [
        "Prism configuration summary",
        "---------------------------",
        f"Storage directory: {describe_path(settings.storage_dir, expect_directory=True)}",
        f"Storage quota (bytes): {settings.storage_quota_bytes}",
        f"Redis DSN: {mask_dsn(settings.redis_dsn)}",
        f"Rate limiting: {'enabled' if settings.redis_dsn else 'disabled (allow all)'}",
        "",
        "Guest workspace",
        "---------------",
        f"Retention: {settings.retention_prompts} prompts, "
        f"{settings.retention_outputs} outputs, "
        f"{settings.retention_chat_messages} chat messages",
        f"Signup prompt after: {settings.prompt_limit_threshold} prompts",
        "",
        "Rate limit policies",
        "-------------------",
    ]
    for endpoint, policy in sorted(settings.rate_limit_policies.items()):
        lines.append(
            f"{endpoint}: {policy['max_requests']} requests / {policy['window_seconds']} s"
        )
    lines.extend(
        [
            "",
            "API server",
            "----------",
            f"Bind address: {settings.api_host}:{settings.api_port}",
            f"App base URL: {settings.app_base_url}",
        ]
    )
    print("\n".join(lines))
