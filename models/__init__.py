"""Data models for Prism.

Updates: v0.2.0 - 2026-09-05 - Export migration payload and result records.
Updates: v0.1.0 - 2026-08-30 - Export guest work dataclasses and DocumentTimestamp.
"""

from .guest_work import (
    ChatMessage,
    LocalWork,
    MigrationMetadata,
    MigrationPayload,
    MigrationResult,
    Prompt,
    PromptOutput,
    StorageInfo,
    StoreResult,
    WorkSummary,
)
from .timestamp import DocumentTimestamp

__all__ = [
    "ChatMessage",
    "DocumentTimestamp",
    "LocalWork",
    "MigrationMetadata",
    "MigrationPayload",
    "MigrationResult",
    "Prompt",
    "PromptOutput",
    "StorageInfo",
    "StoreResult",
    "WorkSummary",
]
