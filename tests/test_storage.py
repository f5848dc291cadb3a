"""Tests for key/value storage backends."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.exceptions import GuestStorageError, StorageQuotaExceededError
from core.storage import InMemoryStorage, JsonFileStorage


def test_in_memory_storage_round_trip() -> None:
    storage = InMemoryStorage()
    storage.set_item("key", "value")

    assert storage.get_item("key") == "value"
    storage.remove_item("key")
    storage.remove_item("missing")
    assert storage.get_item("key") is None


def test_in_memory_storage_enforces_quota() -> None:
    storage = InMemoryStorage(quota_bytes=10)
    storage.set_item("a", "12345")

    with pytest.raises(StorageQuotaExceededError):
        storage.set_item("b", "123456789")
    # Replacing an existing key only counts the new value.
    storage.set_item("a", "123456789")
    assert storage.get_item("a") == "123456789"


def test_json_file_storage_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "local.json"
    JsonFileStorage(path).set_item("prism_guest_work", '{"prompts": []}')

    reopened = JsonFileStorage(path)
    assert reopened.get_item("prism_guest_work") == '{"prompts": []}'
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "prism_guest_work": '{"prompts": []}'
    }

    reopened.remove_item("prism_guest_work")
    assert reopened.get_item("prism_guest_work") is None


def test_json_file_storage_missing_file_reads_as_empty(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "absent.json")

    assert storage.get_item("anything") is None


def test_json_file_storage_rejects_corrupt_document(tmp_path: Path) -> None:
    path = tmp_path / "local.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(GuestStorageError):
        JsonFileStorage(path).get_item("key")


def test_json_file_storage_quota(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "local.json", quota_bytes=16)

    with pytest.raises(StorageQuotaExceededError):
        storage.set_item("key", "x" * 32)
    assert not (tmp_path / "local.json").exists()
