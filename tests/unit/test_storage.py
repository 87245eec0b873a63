"""Unit tests for key-value storage and theme preferences."""

import json

import pytest

from services.preference_service import THEME_KEY, PreferenceService
from utils.exceptions import StorageQuotaExceeded
from utils.storage import FileStorage, MemoryStorage


class TestMemoryStorage:

    def test_get_set_delete(self):
        storage = MemoryStorage()
        assert storage.get("k") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"
        assert storage.delete("k") is True
        assert storage.delete("k") is False

    def test_quota_counts_keys_and_values(self):
        storage = MemoryStorage(quota_bytes=10)
        storage.set("ab", "cdef")
        with pytest.raises(StorageQuotaExceeded):
            storage.set("xy", "z" * 5)
        assert storage.get("xy") is None

    def test_overwrite_excludes_previous_value(self):
        storage = MemoryStorage(quota_bytes=10)
        storage.set("ab", "cdefgh")
        storage.set("ab", "12345678")
        assert storage.get("ab") == "12345678"


class TestFileStorage:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        FileStorage(str(path)).set("k", "v")
        assert FileStorage(str(path)).get("k") == "v"
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{broken", encoding="utf-8")
        storage = FileStorage(str(path))
        assert storage.get("k") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"

    def test_quota(self, tmp_path):
        storage = FileStorage(str(tmp_path / "store.json"), quota_bytes=4)
        with pytest.raises(StorageQuotaExceeded):
            storage.set("key", "value")
        assert not (tmp_path / "store.json").exists()

    def test_delete(self, tmp_path):
        storage = FileStorage(str(tmp_path / "store.json"))
        storage.set("a", "1")
        assert storage.delete("a") is True
        assert storage.delete("a") is False


class TestPreferenceService:

    def test_defaults_to_light(self, memory_storage):
        assert PreferenceService(memory_storage).get_theme() == "light"

    def test_toggle_persists(self, memory_storage):
        preferences = PreferenceService(memory_storage)
        assert preferences.toggle_theme() == "dark"
        assert memory_storage.get(THEME_KEY) == "dark"
        assert preferences.toggle_theme() == "light"

    def test_unknown_value_reads_as_default(self, memory_storage):
        memory_storage.set(THEME_KEY, "sepia")
        assert PreferenceService(memory_storage).get_theme() == "light"

    def test_write_failure_is_not_raised(self):
        preferences = PreferenceService(MemoryStorage(quota_bytes=1))
        assert preferences.set_theme("dark") == "dark"
        assert preferences.get_theme() == "light"
