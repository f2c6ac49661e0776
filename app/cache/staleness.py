"""
Staleness evaluation for the refresh scheduler.

Ranks every known cache key by how urgently it needs a refresh.
"""
import sqlite3
import logging
from typing import Callable, List, Optional, Sequence

from app.errors import CacheReadError

from .core import StalenessCandidate, now_ms
from .store import CacheStore
from .ttl_policies import CACHE_KEYS, get_ttl_for_class

logger = logging.getLogger("cache.staleness")


class StalenessEvaluator:
    """
    Produces refresh candidates for all known cache keys.

    Candidates are sorted by priority (highest first), then by age
    (oldest first). Read-only against the cache store.
    """

    def __init__(self, store: CacheStore, clock: Callable[[], int] = now_ms):
        self._store = store
        self._clock = clock

    def evaluate(self, now: Optional[int] = None) -> List[StalenessCandidate]:
        """
        Compute one candidate per cache key.

        Raises:
            CacheReadError: If cache metadata cannot be read
        """
        if now is None:
            now = self._clock()

        try:
            last_updated = self._store.read_last_updated()
        except (sqlite3.Error, ValueError) as e:
            raise CacheReadError(f"Unable to read cache metadata: {e}") from e

        candidates = []
        for key, cache_class in CACHE_KEYS.items():
            ttl_ms, weight = get_ttl_for_class(cache_class)

            if key not in last_updated:
                candidates.append(
                    StalenessCandidate(type=key, age=float("inf"), priority=weight)
                )
                continue

            age = now - last_updated[key]
            candidates.append(
                StalenessCandidate(
                    type=key,
                    age=age,
                    priority=weight if age > ttl_ms else 0,
                )
            )

        candidates.sort(key=lambda c: (c.priority, c.age), reverse=True)

        stale_count = sum(1 for c in candidates if c.is_stale)
        logger.debug(f"Evaluated {len(candidates)} caches, {stale_count} stale")
        return candidates


def has_stale(candidates: Sequence[StalenessCandidate]) -> bool:
    """True if any candidate needs a refresh."""
    return any(c.is_stale for c in candidates)


def needs_update(candidates: Sequence[StalenessCandidate], prefixes: Sequence[str]) -> bool:
    """
    Check whether any stale candidate's key starts with one of the prefixes.

    Args:
        candidates: Output of StalenessEvaluator.evaluate()
        prefixes: Key prefixes, e.g. ["top10", "global"]
    """
    return any(
        c.is_stale and any(c.type.startswith(prefix) for prefix in prefixes)
        for c in candidates
    )
