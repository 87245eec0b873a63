"""Unit tests for the capped history store and its quota degrade policy."""

import json

import pytest

from services.history_service import HISTORY_KEY, HistoryStore
from utils.exceptions import StorageQuotaExceeded
from utils.storage import MemoryStorage


class FlakyStorage(MemoryStorage):
    """前 fail_times 次写入抛出配额异常"""

    def __init__(self, fail_times: int):
        super().__init__()
        self.fail_times = fail_times
        self.writes = []

    def set(self, key, value):
        self.writes.append(json.loads(value))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise StorageQuotaExceeded("full")
        super().set(key, value)


def persisted_ids(storage, key=HISTORY_KEY):
    envelope = json.loads(storage.get(key))
    return [entry["id"] for entry in envelope["state"]["items"]]


class TestAddItem:

    def test_caps_at_one_hundred_newest_first(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        for i in range(101):
            store.add_item(make_history_item(f"item-{i}"))

        items = store.items
        assert len(items) == 100
        assert items[0].id == "item-100"
        assert items[-1].id == "item-1"
        assert store.get("item-0") is None

    def test_same_id_replaces_at_head(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a"))
        store.add_item(make_history_item("b"))
        store.add_item(make_history_item("a", prompt="updated"))

        assert [item.id for item in store.items] == ["a", "b"]
        assert store.get("a").prompt_raw == "updated"

    def test_items_returns_a_copy(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a"))
        store.items.clear()
        assert len(store.items) == 1


class TestRemoveAndClear:

    def test_remove_item(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        for item_id in ("a", "b", "c"):
            store.add_item(make_history_item(item_id))
        store.remove_item("b")
        assert [item.id for item in store.items] == ["c", "a"]
        assert persisted_ids(memory_storage) == ["c", "a"]

    def test_remove_missing_is_noop(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a"))
        store.remove_item("zzz")
        assert [item.id for item in store.items] == ["a"]

    def test_clear(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a"))
        store.clear()
        assert store.items == []
        assert persisted_ids(memory_storage) == []


class TestPersistence:

    def test_envelope_format(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a", prompt_enhanced="better"))

        envelope = json.loads(memory_storage.get(HISTORY_KEY))
        assert envelope["version"] == 1
        entry = envelope["state"]["items"][0]
        assert entry["promptRaw"] == "a lighthouse at dusk"
        assert entry["promptEnhanced"] == "better"
        assert entry["params"]["aspectRatio"] == "16:9"
        assert entry["params"]["sequentialImageGeneration"] == "disabled"
        assert "thumb" not in entry

    def test_reload_restores_items(self, memory_storage, make_history_item):
        store = HistoryStore(memory_storage)
        store.add_item(make_history_item("a"))
        store.add_item(make_history_item("b"))

        reloaded = HistoryStore(memory_storage)
        assert [item.id for item in reloaded.items] == ["b", "a"]

    @pytest.mark.parametrize("raw", [
        "not json",
        json.dumps({"state": {"items": []}, "version": 2}),
        json.dumps(["a", "b"]),
    ])
    def test_invalid_envelope_loads_empty(self, raw):
        storage = MemoryStorage()
        storage.set(HISTORY_KEY, raw)
        assert HistoryStore(storage).items == []

    def test_invalid_entries_are_skipped(self, make_history_item):
        storage = MemoryStorage()
        good = make_history_item("good").to_storage()
        storage.set(HISTORY_KEY, json.dumps({"state": {"items": [{"id": "broken"}, good]}, "version": 1}))
        assert [item.id for item in HistoryStore(storage).items] == ["good"]


class TestQuotaDegrade:

    def test_halves_then_succeeds(self, make_history_item):
        storage = FlakyStorage(fail_times=0)
        store = HistoryStore(storage)
        for i in range(4):
            store.add_item(make_history_item(f"item-{i}"))

        storage.fail_times = 1
        storage.writes.clear()
        store.add_item(make_history_item("item-4"))

        assert [len(write["state"]["items"]) for write in storage.writes] == [5, 3]
        assert persisted_ids(storage) == ["item-4", "item-3", "item-2"]
        assert len(store.items) == 5

    def test_clears_key_when_halved_write_fails(self, make_history_item):
        storage = FlakyStorage(fail_times=0)
        store = HistoryStore(storage)
        store.add_item(make_history_item("old"))

        storage.fail_times = 5
        storage.writes.clear()
        store.add_item(make_history_item("new"))

        assert len(storage.writes) == 2
        assert storage.get(HISTORY_KEY) is None
        assert [item.id for item in store.items] == ["new", "old"]

    def test_real_quota(self, make_history_item):
        storage = MemoryStorage(quota_bytes=2500)
        store = HistoryStore(storage)
        for i in range(20):
            store.add_item(make_history_item(f"item-{i}"))

        assert len(store.items) == 20
        raw = storage.get(HISTORY_KEY)
        assert raw is None or len(raw) <= 2500
