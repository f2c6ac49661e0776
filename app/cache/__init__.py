"""
Listing cache model: cache classes, TTL policies, storage, and staleness ranking.
"""
from .core import CacheClass, CacheEntry, StalenessCandidate, now_ms
from .ttl_policies import (
    TTL_CONFIG,
    CACHE_KEYS,
    CAROUSEL_KEYS,
    CALENDAR_KEYS,
    GLOBAL_KEYS,
    PROVIDER_IDS,
    STREAMING_SERVICES,
    get_class_for_key,
    get_ttl_for_class,
    get_group_keys,
    is_known_key,
)
from .store import CacheStore, DocumentStore, PUBLIC_COLLECTION
from .staleness import StalenessEvaluator, has_stale, needs_update

__all__ = [
    # Core types
    "CacheClass",
    "CacheEntry",
    "StalenessCandidate",
    "now_ms",
    # TTL policies
    "TTL_CONFIG",
    "CACHE_KEYS",
    "CAROUSEL_KEYS",
    "CALENDAR_KEYS",
    "GLOBAL_KEYS",
    "PROVIDER_IDS",
    "STREAMING_SERVICES",
    "get_class_for_key",
    "get_ttl_for_class",
    "get_group_keys",
    "is_known_key",
    # Storage
    "CacheStore",
    "DocumentStore",
    "PUBLIC_COLLECTION",
    # Staleness
    "StalenessEvaluator",
    "has_stale",
    "needs_update",
]
