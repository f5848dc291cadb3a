"""Guest workspace data model definitions.

Prompts, outputs and chat messages created by unauthenticated visitors live in a
single :class:`LocalWork` record until the visitor signs up and the work is
migrated. Demo catalog entries reuse :class:`Prompt` with the system ownership
marker set.

Updates: v0.4.1 - 2026-10-18 - Reject stored collections holding non-object entries.
Updates: v0.4.0 - 2026-09-14 - Add storage info and migration payload records.
Updates: v0.3.0 - 2026-09-05 - Add MigrationResult with per-item error tracking.
Updates: v0.2.0 - 2026-09-01 - Preserve unknown record fields in ``extra`` mappings.
Updates: v0.1.0 - 2026-08-30 - Initial guest prompt, output, and chat message schema.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from .timestamp import DocumentTimestamp, timestamp_record

GUEST_OWNER = "guest"
SYSTEM_OWNER = "system"
DEFAULT_VISIBILITY = "private"
UNTITLED_PROMPT = "Untitled Prompt"


def _normalise_tags(items: Iterable[Any] | str | None) -> list[str]:
    """Return trimmed, de-duplicated tags preserving first occurrence order."""
    if items is None:
        return []
    if isinstance(items, str):
        items = items.split(",")
    tags: list[str] = []
    seen: set[str] = set()
    for raw in items:
        text = str(raw).strip()
        if not text or text in seen:
            continue
        seen.add(text)
        tags.append(text)
    return tags


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _split_extra(data: Mapping[str, Any], known: Iterable[str]) -> dict[str, Any]:
    known_keys = set(known)
    return {str(key): value for key, value in data.items() if key not in known_keys}


def _record_items(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    """Return the stored collection under *key*, rejecting malformed entries."""
    items = data.get(key) or []
    if not isinstance(items, list):
        raise ValueError(f"{key} must be a list of records")
    for item in items:
        if not isinstance(item, Mapping):
            raise ValueError(f"{key} entries must be objects")
    return items


@dataclass(slots=True)
class Prompt:
    """Prompt owned by a guest, a user, or the demo catalog."""
    id: str | None = None
    title: str = ""
    text: str = ""
    tags: list[str] = field(default_factory=list)
    visibility: str | None = None
    category: str | None = None
    owner: str = GUEST_OWNER
    created_by: str | None = None
    is_demo: bool = False
    read_only: bool = False
    is_guest: bool = False
    created_at: DocumentTimestamp | None = None
    updated_at: DocumentTimestamp | None = None
    stats: dict[str, int] | None = None
    order: int | None = None
    enhanced: bool = False
    enhanced_for: str | None = None
    enhancement_type: str | None = None
    enhanced_at: DocumentTimestamp | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = (
        "id",
        "title",
        "text",
        "tags",
        "visibility",
        "category",
        "owner",
        "created_by",
        "is_demo",
        "read_only",
        "is_guest",
        "created_at",
        "updated_at",
        "stats",
        "order",
        "enhanced",
        "enhanced_for",
        "enhancement_type",
        "enhanced_at",
    )

    def __post_init__(self) -> None:
        self.tags = _normalise_tags(self.tags)

    def to_record(self) -> dict[str, Any]:
        """Return a JSON-serialisable mapping of the prompt."""
        record: dict[str, Any] = dict(self.extra)
        record.update(
            {
                "id": self.id,
                "title": self.title,
                "text": self.text,
                "tags": list(self.tags),
                "visibility": self.visibility,
                "category": self.category,
                "owner": self.owner,
                "created_by": self.created_by,
                "is_demo": self.is_demo,
                "read_only": self.read_only,
                "is_guest": self.is_guest,
                "created_at": timestamp_record(self.created_at),
                "updated_at": timestamp_record(self.updated_at),
                "stats": dict(self.stats) if self.stats is not None else None,
                "order": self.order,
                "enhanced": self.enhanced,
                "enhanced_for": self.enhanced_for,
                "enhancement_type": self.enhancement_type,
                "enhanced_at": timestamp_record(self.enhanced_at),
            }
        )
        return record

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> Prompt:
        """Hydrate a prompt from a stored or caller-supplied mapping."""
        stats_raw = data.get("stats")
        stats = (
            {str(key): int(value) for key, value in stats_raw.items()}
            if isinstance(stats_raw, Mapping)
            else None
        )
        return cls(
            id=_optional_str(data.get("id")),
            title=str(data.get("title") or ""),
            text=str(data.get("text") or ""),
            tags=_normalise_tags(data.get("tags")),
            visibility=_optional_str(data.get("visibility")),
            category=_optional_str(data.get("category")),
            owner=str(data.get("owner") or GUEST_OWNER),
            created_by=_optional_str(data.get("created_by")),
            is_demo=bool(data.get("is_demo", False)),
            read_only=bool(data.get("read_only", False)),
            is_guest=bool(data.get("is_guest", False)),
            created_at=DocumentTimestamp.from_value(data.get("created_at")),
            updated_at=DocumentTimestamp.from_value(data.get("updated_at")),
            stats=stats,
            order=_optional_int(data.get("order")),
            enhanced=bool(data.get("enhanced", False)),
            enhanced_for=_optional_str(data.get("enhanced_for")),
            enhancement_type=_optional_str(data.get("enhancement_type")),
            enhanced_at=DocumentTimestamp.from_value(data.get("enhanced_at")),
            extra=_split_extra(data, cls._FIELDS),
        )

    def merged(self, updates: Mapping[str, Any]) -> Prompt:
        """Return a copy with *updates* applied on top of the current fields."""
        record = self.to_record()
        record.update({str(key): value for key, value in updates.items()})
        return Prompt.from_record(record)


@dataclass(slots=True)
class PromptOutput:
    """Model output recorded against a guest prompt."""
    id: str
    prompt_id: str | None
    text: str = ""
    model: str | None = None
    notes: str | None = None
    created_at: DocumentTimestamp | None = None
    is_guest: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = (
        "id",
        "prompt_id",
        "text",
        "model",
        "notes",
        "created_at",
        "is_guest",
    )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = dict(self.extra)
        record.update(
            {
                "id": self.id,
                "prompt_id": self.prompt_id,
                "text": self.text,
                "model": self.model,
                "notes": self.notes,
                "created_at": timestamp_record(self.created_at),
                "is_guest": self.is_guest,
            }
        )
        return record

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> PromptOutput:
        return cls(
            id=str(data.get("id") or ""),
            prompt_id=_optional_str(data.get("prompt_id")),
            text=str(data.get("text") or ""),
            model=_optional_str(data.get("model")),
            notes=_optional_str(data.get("notes")),
            created_at=DocumentTimestamp.from_value(data.get("created_at")),
            is_guest=bool(data.get("is_guest", True)),
            extra=_split_extra(data, cls._FIELDS),
        )


@dataclass(slots=True)
class ChatMessage:
    """Team chat message written while browsing as a guest."""
    id: str
    text: str = ""
    author: str | None = None
    timestamp: DocumentTimestamp | None = None
    is_guest: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = ("id", "text", "author", "timestamp", "is_guest")

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = dict(self.extra)
        record.update(
            {
                "id": self.id,
                "text": self.text,
                "author": self.author,
                "timestamp": timestamp_record(self.timestamp),
                "is_guest": self.is_guest,
            }
        )
        return record

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> ChatMessage:
        return cls(
            id=str(data.get("id") or ""),
            text=str(data.get("text") or ""),
            author=_optional_str(data.get("author")),
            timestamp=DocumentTimestamp.from_value(data.get("timestamp")),
            is_guest=bool(data.get("is_guest", True)),
            extra=_split_extra(data, cls._FIELDS),
        )


@dataclass(slots=True)
class LocalWork:
    """Everything a guest has created during the current browser session."""
    session_id: str
    prompts: list[Prompt] = field(default_factory=list)
    outputs: list[PromptOutput] = field(default_factory=list)
    chat_messages: list[ChatMessage] = field(default_factory=list)
    enhancement_count: int = 0
    last_modified: DocumentTimestamp | None = None

    def is_empty(self) -> bool:
        return not (self.prompts or self.outputs or self.chat_messages)

    def to_record(self) -> dict[str, Any]:
        return {
            "prompts": [prompt.to_record() for prompt in self.prompts],
            "outputs": [output.to_record() for output in self.outputs],
            "chat_messages": [message.to_record() for message in self.chat_messages],
            "enhancement_count": self.enhancement_count,
            "last_modified": timestamp_record(self.last_modified),
            "session_id": self.session_id,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any], *, session_id: str) -> LocalWork:
        """Hydrate stored work; *session_id* is used when the record lacks one."""
        return cls(
            session_id=str(data.get("session_id") or session_id),
            prompts=[Prompt.from_record(item) for item in _record_items(data, "prompts")],
            outputs=[PromptOutput.from_record(item) for item in _record_items(data, "outputs")],
            chat_messages=[
                ChatMessage.from_record(item) for item in _record_items(data, "chat_messages")
            ],
            enhancement_count=int(data.get("enhancement_count") or 0),
            last_modified=DocumentTimestamp.from_value(data.get("last_modified")),
        )


@dataclass(frozen=True, slots=True)
class WorkSummary:
    """Counts rendered in the "what you'll save" upsell."""

    prompt_count: int
    output_count: int
    chat_count: int
    enhancement_count: int
    last_modified: DocumentTimestamp | None
    session_id: str


@dataclass(frozen=True, slots=True)
class StorageInfo:
    """Serialised size of the stored guest record."""

    size_in_bytes: int
    prompt_count: int
    output_count: int
    chat_count: int

    @property
    def size_in_kb(self) -> float:
        return round(self.size_in_bytes / 1024, 2)


@dataclass(frozen=True, slots=True)
class StoreResult:
    """Outcome of a local store write; failures never raise."""

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> StoreResult:
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> StoreResult:
        return cls(success=False, error=error)


@dataclass(frozen=True, slots=True)
class MigrationMetadata:
    """Source details attached to an exported guest workspace."""

    session_id: str
    last_modified: DocumentTimestamp | None
    migrated_at: DocumentTimestamp

    def to_record(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "last_modified": timestamp_record(self.last_modified),
            "migrated_at": self.migrated_at.to_record(),
        }


@dataclass(frozen=True, slots=True)
class MigrationPayload:
    """Backend-shaped export of guest work."""

    prompts: list[dict[str, Any]]
    chat_messages: list[ChatMessage]
    metadata: MigrationMetadata

    def to_record(self) -> dict[str, Any]:
        return {
            "prompts": self.prompts,
            "chat_messages": [message.to_record() for message in self.chat_messages],
            "metadata": self.metadata.to_record(),
        }


@dataclass(slots=True)
class MigrationResult:
    """Outcome of one migration attempt; not persisted."""
    success: bool
    migrated_count: int = 0
    errors: list[Exception] = field(default_factory=list)
    metadata: MigrationMetadata | None = None
    error: str | None = None


__all__ = [
    "ChatMessage",
    "DEFAULT_VISIBILITY",
    "GUEST_OWNER",
    "LocalWork",
    "MigrationMetadata",
    "MigrationPayload",
    "MigrationResult",
    "Prompt",
    "PromptOutput",
    "SYSTEM_OWNER",
    "StorageInfo",
    "StoreResult",
    "UNTITLED_PROMPT",
    "WorkSummary",
]
