"""
Unit tests for the SQLite document store and cache entry repository.
"""
import tempfile
from pathlib import Path

import pytest

from app.cache.store import CacheStore, DocumentStore


@pytest.fixture
def documents():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield DocumentStore(Path(tmpdir) / "nested" / "docs.db")


class TestDocumentStore:
    """Tests for DocumentStore."""

    def test_write_and_read(self, documents):
        documents.write_document("public", "trending", {"items": [{"externalId": 1}]})

        assert documents.read_document("public", "trending") == {"items": [{"externalId": 1}]}
        assert documents.read_document("public", "missing") is None
        assert documents.read_document("private", "trending") is None

    def test_replace_drops_old_fields(self, documents):
        documents.write_document("public", "k", {"a": 1, "b": 2})
        documents.write_document("public", "k", {"a": 3})

        assert documents.read_document("public", "k") == {"a": 3}

    def test_merge_keeps_old_fields(self, documents):
        documents.write_document("public", "k", {"a": 1, "b": 2})
        documents.write_document("public", "k", {"a": 3}, merge=True)

        assert documents.read_document("public", "k") == {"a": 3, "b": 2}

    def test_merge_into_missing_document(self, documents):
        documents.write_document("public", "k", {"a": 1}, merge=True)
        assert documents.read_document("public", "k") == {"a": 1}

    def test_read_collection(self, documents):
        documents.write_document("public", "one", {"n": 1})
        documents.write_document("public", "two", {"n": 2})
        documents.write_document("other", "three", {"n": 3})

        assert documents.read_collection("public") == {"one": {"n": 1}, "two": {"n": 2}}
        assert documents.read_collection("empty") == {}

    def test_delete(self, documents):
        documents.write_document("public", "k", {"a": 1})

        assert documents.delete_document("public", "k") is True
        assert documents.delete_document("public", "k") is False
        assert documents.read_document("public", "k") is None

    def test_batch_write(self, documents):
        count = documents.batch_write("public", {"a": {"n": 1}, "b": {"n": 2}})

        assert count == 2
        assert set(documents.read_collection("public")) == {"a", "b"}

    @pytest.mark.parametrize("data", [
        {"posterUrl": None},
        {"items": [{"title": "ok"}, {"title": None}]},
        {"nested": {"deep": {"value": None}}},
    ])
    def test_null_values_are_rejected(self, documents, data):
        with pytest.raises(ValueError):
            documents.write_document("public", "k", data)
        assert documents.read_document("public", "k") is None

    def test_batch_with_null_writes_nothing(self, documents):
        with pytest.raises(ValueError):
            documents.batch_write("public", {"a": {"n": 1}, "b": {"n": None}})
        assert documents.read_collection("public") == {}


class TestCacheStore:
    """Tests for CacheStore."""

    def test_write_entry_document_shape(self, cache_store):
        entry = cache_store.write_entry("top10-netflix", [{"externalId": 1}], 1000, now=5000)

        assert entry.expires_at == 6000
        assert cache_store._documents.read_document("public", "top10-netflix") == {
            "items": [{"externalId": 1}],
            "lastUpdated": 5000,
            "expiresAt": 6000,
            "cacheType": "top10-netflix",
        }

    def test_read_entry(self, cache_store):
        cache_store.write_entry("trending", [{"externalId": 2}], 1000, now=10)

        entry = cache_store.read_entry("trending")

        assert entry.items == [{"externalId": 2}]
        assert entry.last_updated == 10
        assert cache_store.read_entry("popular-tv") is None

    def test_read_last_updated(self, cache_store):
        cache_store.write_entry("trending", [], 1000, now=42)
        cache_store._documents.write_document("public", "legacy", {"items": []})

        assert cache_store.read_last_updated() == {"trending": 42, "legacy": 0}

    def test_delete_entry(self, cache_store):
        cache_store.write_entry("trending", [], 1000)

        assert cache_store.delete_entry("trending") is True
        assert cache_store.read_entry("trending") is None
