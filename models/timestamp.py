"""Document timestamp value type shared by guest and demo records.

Records produced by the web client carry document-database style timestamps
(``seconds`` plus ``nanoseconds``), ISO-8601 strings, or native datetimes
depending on where they were created. :class:`DocumentTimestamp` normalises
all three shapes behind a single constructor.

Updates:
  v0.2.0 - 2026-09-03 - Accept attribute-style timestamp objects in from_value.
  v0.1.0 - 2026-08-30 - Initial timestamp value type.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MILLI = 1_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True, slots=True, order=True)
class DocumentTimestamp:
    """Seconds/nanoseconds timestamp mirroring the document store's native type."""
    seconds: int
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.nanoseconds < _NANOS_PER_SECOND:
            raise ValueError("nanoseconds must be within [0, 1e9)")

    @classmethod
    def now(cls) -> DocumentTimestamp:
        """Return a timestamp for the current instant."""
        return cls.from_datetime(datetime.now(UTC))

    @classmethod
    def from_datetime(cls, value: datetime) -> DocumentTimestamp:
        """Build a timestamp from *value*, treating naive datetimes as UTC."""
        aware = value if value.tzinfo else value.replace(tzinfo=UTC)
        delta = aware - _EPOCH
        seconds = delta.days * 86_400 + delta.seconds
        micros = delta.microseconds
        return cls(seconds=seconds, nanoseconds=micros * 1000)

    @classmethod
    def from_value(cls, value: Any) -> DocumentTimestamp | None:
        """Return a timestamp from a datetime, ISO string, or seconds/nanoseconds pair.

        ``None`` and empty strings yield ``None``. Mappings and objects exposing
        ``seconds`` (and optionally ``nanoseconds``) are accepted for the raw
        pair form, which covers values previously serialised by :meth:`to_record`.
        """
        if value is None:
            return None
        if isinstance(value, DocumentTimestamp):
            return value
        if isinstance(value, datetime):
            return cls.from_datetime(value)
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text.endswith("Z"):
                text = f"{text[:-1]}+00:00"
            return cls.from_datetime(datetime.fromisoformat(text))
        if isinstance(value, Mapping) and "seconds" in value:
            return cls(
                seconds=int(value["seconds"]),
                nanoseconds=int(value.get("nanoseconds") or 0),
            )
        seconds = getattr(value, "seconds", None)
        if seconds is not None:
            return cls(
                seconds=int(seconds),
                nanoseconds=int(getattr(value, "nanoseconds", 0) or 0),
            )
        raise TypeError(f"Unsupported timestamp value: {value!r}")

    def to_datetime(self) -> datetime:
        """Return the timestamp as an aware UTC datetime."""
        return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanoseconds // 1000)

    def to_millis(self) -> int:
        """Return milliseconds since the Unix epoch."""
        return self.seconds * 1000 + self.nanoseconds // _NANOS_PER_MILLI

    def isoformat(self) -> str:
        return self.to_datetime().isoformat()

    def to_record(self) -> dict[str, int]:
        """Return the JSON-serialisable seconds/nanoseconds mapping."""
        return {"seconds": self.seconds, "nanoseconds": self.nanoseconds}


def timestamp_record(value: DocumentTimestamp | None) -> dict[str, int] | None:
    """Serialise an optional timestamp."""
    return value.to_record() if value is not None else None


__all__ = ["DocumentTimestamp", "timestamp_record"]
