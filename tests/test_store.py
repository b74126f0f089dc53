"""
Tests for the key-value stores backing the persistent cache tier.
"""

import json

import pytest

from alphdata.cache.store import FileKeyValueStore, MemoryKeyValueStore
from alphdata.exceptions import StorageError


class TestMemoryKeyValueStore:

    def test_set_get_delete(self):
        store = MemoryKeyValueStore()
        store.set("a", "1")

        assert store.get("a") == "1"
        assert store.keys() == ["a"]
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_quota_exceeded_raises_storage_error(self):
        """Writes beyond the byte quota fail without storing anything."""
        store = MemoryKeyValueStore(max_bytes=10)
        store.set("a", "12345")

        with pytest.raises(StorageError):
            store.set("b", "123456")

        assert store.get("b") is None

    def test_overwrite_does_not_count_old_value(self):
        store = MemoryKeyValueStore(max_bytes=10)
        store.set("a", "12345")
        store.set("a", "1234567890")

        assert store.get("a") == "1234567890"


class TestFileKeyValueStore:

    def test_values_survive_reopen(self, tmp_path):
        """A second instance over the same directory sees earlier writes."""
        FileKeyValueStore(tmp_path).set("alephium_token_type_cache_abc", '{"isNFT": true}')

        reopened = FileKeyValueStore(tmp_path)

        assert reopened.keys() == ["alephium_token_type_cache_abc"]
        assert reopened.get("alephium_token_type_cache_abc") == '{"isNFT": true}'

    def test_writes_leave_no_temporary_files(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        for i in range(5):
            store.set(f"key{i}", json.dumps({"i": i}))

        assert list(tmp_path.glob("*.tmp")) == []
        assert len(list(tmp_path.glob("*.json"))) == 6  # five values plus the index

    def test_delete(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("k", "v")

        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.get("k") is None
        assert FileKeyValueStore(tmp_path).keys() == []

    def test_corrupted_index_starts_empty(self, tmp_path):
        (tmp_path / "store_index.json").write_text("not json", encoding="utf-8")

        store = FileKeyValueStore(tmp_path)

        assert store.keys() == []

    def test_value_file_removed_externally(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("k", "v")
        for path in tmp_path.glob("*.json"):
            if path.name != "store_index.json":
                path.unlink()

        assert store.get("k") is None
        assert "k" not in store.keys()

    def test_instances_share_writes(self, tmp_path):
        """Two open instances over one directory see each other's writes."""
        first = FileKeyValueStore(tmp_path)
        second = FileKeyValueStore(tmp_path)

        first.set("k", "v1")
        assert second.get("k") == "v1"

        second.set("k", "v2")
        assert first.get("k") == "v2"

    def test_interleaved_writers_keep_all_keys(self, tmp_path):
        first = FileKeyValueStore(tmp_path)
        second = FileKeyValueStore(tmp_path)

        first.set("a", "1")
        second.set("b", "2")
        first.set("c", "3")

        assert sorted(first.keys()) == ["a", "b", "c"]
        assert sorted(FileKeyValueStore(tmp_path).keys()) == ["a", "b", "c"]

    def test_delete_from_other_instance(self, tmp_path):
        first = FileKeyValueStore(tmp_path)
        second = FileKeyValueStore(tmp_path)
        first.set("k", "v")

        assert second.delete("k") is True
        assert first.get("k") is None
        assert first.keys() == []
