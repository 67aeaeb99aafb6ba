"""
Tests for the history cache and its storage backends.
"""
import json
from datetime import timedelta

import pytest

from style_studio.config import DEFAULT_HISTORY_KEY
from style_studio.exceptions import HistoryStorageError
from style_studio.history.history_cache import HistoryCache, make_history_entry
from style_studio.history.storage import InMemorySessionStorage, JsonFileSessionStorage
from style_studio.models import AnalysisResult, SourceKind
from conftest import START


def make_entry(n, payload=None, image="https://cdn.example.com/e.jpg"):
    timestamp = START + timedelta(minutes=n)
    result = AnalysisResult(
        source_image=image,
        source_label=f"E{n}",
        payload=payload if payload is not None else {"internalProducts": [{"productId": f"P{n}"}]},
        completed_at=timestamp,
    )
    return make_history_entry(SourceKind.CATALOG_ITEM, result, timestamp=timestamp)


class TestMakeHistoryEntry:
    def test_id_is_epoch_millis(self):
        entry = make_entry(0)
        assert entry.id == str(int(START.timestamp() * 1000))
        assert entry.source_label == "E0"

    def test_no_entry_without_image(self):
        assert make_entry(0, image=None) is None


class TestHistoryCache:
    def test_keeps_three_newest(self):
        cache = HistoryCache(InMemorySessionStorage())
        for n in range(1, 6):
            cache.record(make_entry(n))

        assert [entry.source_label for entry in cache.entries] == ["E5", "E4", "E3"]

    def test_persists_json_array(self):
        storage = InMemorySessionStorage()
        cache = HistoryCache(storage)
        for n in range(1, 6):
            cache.record(make_entry(n))

        stored = json.loads(storage.get_item(DEFAULT_HISTORY_KEY))
        assert [item["source_label"] for item in stored] == ["E5", "E4", "E3"]
        assert stored[0]["workflow_type"] == "catalog-item"

    def test_reload_restores_entries(self):
        storage = InMemorySessionStorage()
        cache = HistoryCache(storage)
        cache.record(make_entry(1))
        cache.record(make_entry(2))

        reloaded = HistoryCache(storage)

        assert reloaded.entries == cache.entries
        assert reloaded.active is None

    def test_reload_sorts_and_caps(self):
        storage = InMemorySessionStorage()
        big = HistoryCache(storage, capacity=5)
        for n in (3, 1, 5, 2, 4):
            big.record(make_entry(n))

        small = HistoryCache(storage, capacity=3)

        assert [entry.source_label for entry in small.entries] == ["E5", "E4", "E3"]

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', '[{"id": ""}]'])
    def test_unreadable_storage_starts_empty(self, raw):
        storage = InMemorySessionStorage()
        storage.set_item(DEFAULT_HISTORY_KEY, raw)

        assert len(HistoryCache(storage)) == 0

    def test_rejects_entry_without_image(self):
        cache = HistoryCache(InMemorySessionStorage())
        entry = make_entry(1)
        broken = entry.__class__(
            id=entry.id,
            workflow_type=entry.workflow_type,
            source_image="",
            source_label=entry.source_label,
            timestamp=entry.timestamp,
            result=entry.result,
        )

        assert not cache.record(broken)
        assert len(cache) == 0

    def test_duplicate_ids_get_suffix(self):
        cache = HistoryCache(InMemorySessionStorage())
        cache.record(make_entry(1))
        cache.record(make_entry(1))

        first, second = cache.entries
        assert first.id == f"{second.id}-1"

    def test_activate_and_clear(self):
        storage = InMemorySessionStorage()
        cache = HistoryCache(storage)
        cache.record(make_entry(1))
        entry_id = cache.entries[0].id

        assert cache.activate(entry_id).id == entry_id
        assert cache.activate("nope") is None
        assert cache.active.id == entry_id

        cache.clear()
        assert cache.active is None
        assert len(cache) == 0
        assert storage.get_item(DEFAULT_HISTORY_KEY) == "[]"

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            HistoryCache(InMemorySessionStorage(), capacity=0)


class TestStorageDegrade:
    """Storage failures never surface and never shrink the in-memory list."""

    def big_entry(self, n):
        return make_entry(n, payload={"notes": "x" * 600})

    def test_quota_falls_back_to_newest_entry(self):
        storage = InMemorySessionStorage(quota_bytes=1500)
        cache = HistoryCache(storage)
        cache.record(self.big_entry(1))
        cache.record(self.big_entry(2))

        assert len(cache) == 2
        stored = json.loads(storage.get_item(DEFAULT_HISTORY_KEY))
        assert [item["source_label"] for item in stored] == ["E2"]

    def test_storage_that_rejects_everything(self):
        storage = InMemorySessionStorage(quota_bytes=10)
        cache = HistoryCache(storage)

        assert cache.record(self.big_entry(1))
        assert len(cache) == 1
        assert storage.get_item(DEFAULT_HISTORY_KEY) is None

    def test_unserializable_payload_is_kept_in_memory(self):
        storage = InMemorySessionStorage()
        cache = HistoryCache(storage)

        assert cache.record(make_entry(1, payload={"bad": object()}))
        assert len(cache) == 1
        assert storage.get_item(DEFAULT_HISTORY_KEY) is None


class TestStorageBackends:
    def test_in_memory_quota(self):
        storage = InMemorySessionStorage(quota_bytes=5)
        storage.set_item("k", "12345")
        with pytest.raises(HistoryStorageError):
            storage.set_item("other", "1")
        storage.set_item("k", "54321")
        assert storage.get_item("k") == "54321"

    def test_json_file_roundtrip(self, tmp_path):
        storage = JsonFileSessionStorage(str(tmp_path / "history"))
        assert storage.get_item("wizard_analysis_history") is None

        storage.set_item("wizard_analysis_history", "[]")
        assert JsonFileSessionStorage(str(tmp_path / "history")).get_item("wizard_analysis_history") == "[]"

        storage.remove_item("wizard_analysis_history")
        storage.remove_item("wizard_analysis_history")
        assert storage.get_item("wizard_analysis_history") is None

    def test_json_file_key_is_sanitized(self, tmp_path):
        storage = JsonFileSessionStorage(str(tmp_path))
        storage.set_item("../escape/key", "v")

        assert (tmp_path / ".._escape_key.json").exists()
        assert storage.get_item("../escape/key") == "v"

    def test_json_file_write_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        storage = JsonFileSessionStorage(str(blocker))

        with pytest.raises(HistoryStorageError):
            storage.set_item("k", "v")

    def test_history_survives_reload_from_disk(self, tmp_path):
        cache = HistoryCache(JsonFileSessionStorage(str(tmp_path)))
        cache.record(make_entry(1))

        reloaded = HistoryCache(JsonFileSessionStorage(str(tmp_path)))
        assert [entry.source_label for entry in reloaded.entries] == ["E1"]

    def test_undecodable_file_starts_empty(self, tmp_path):
        (tmp_path / f"{DEFAULT_HISTORY_KEY}.json").write_bytes(b"\xff\xfe\x00garbage")
        storage = JsonFileSessionStorage(str(tmp_path))

        with pytest.raises(HistoryStorageError):
            storage.get_item(DEFAULT_HISTORY_KEY)

        cache = HistoryCache(storage)
        assert len(cache) == 0
        cache.record(make_entry(1))
        assert [entry.source_label for entry in HistoryCache(JsonFileSessionStorage(str(tmp_path))).entries] == ["E1"]
