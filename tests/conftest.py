"""
Shared fixtures: a temporary cache store and seeding helpers.
"""
import tempfile
from pathlib import Path

import pytest

from app.cache.core import now_ms
from app.cache.store import CacheStore, DocumentStore
from app.cache.ttl_policies import CACHE_KEYS, get_ttl_for_class


# =============================================================================
# Store fixtures
# =============================================================================

@pytest.fixture
def cache_store():
    """Cache store backed by a temporary SQLite file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        documents = DocumentStore(Path(tmpdir) / "test_cache.db")
        yield CacheStore(documents)


@pytest.fixture
def seed_cache(cache_store):
    """
    Write cache entries with a given age.

    Usage:
        seed_cache({"top10-netflix": 45 * 60 * 1000}, now=now)
    """
    def _seed(ages_ms, now=None):
        now = now if now is not None else now_ms()
        for key, age in ages_ms.items():
            ttl_ms, _ = get_ttl_for_class(CACHE_KEYS[key])
            cache_store.write_entry(key, [{"externalId": 1, "title": "seed"}], ttl_ms, now=now - age)
        return now
    return _seed


@pytest.fixture
def all_fresh_ages():
    """Age of 1 minute for every known cache key."""
    return {key: 60 * 1000 for key in CACHE_KEYS}
