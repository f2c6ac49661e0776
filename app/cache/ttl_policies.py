"""
TTL configuration and cache-key-to-class mapping.
"""
from typing import Dict, List, Any, Tuple

from .core import CacheClass


MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


# TTL Configuration by class (in milliseconds)
# Longer-lived classes carry the higher weight and sort first once stale.
TTL_CONFIG: Dict[CacheClass, Dict[str, Any]] = {
    CacheClass.PROVIDER_TOP10: {
        "ttl_ms": 30 * MINUTE_MS,
        "priority": 1,
    },
    CacheClass.GLOBAL_TOP10: {
        "ttl_ms": 30 * MINUTE_MS,
        "priority": 1,
    },
    CacheClass.CAROUSEL: {
        "ttl_ms": HOUR_MS,
        "priority": 2,
    },
    CacheClass.CALENDAR: {
        "ttl_ms": 6 * HOUR_MS,
        "priority": 3,
    },
}


# Streaming services and their TMDB watch provider IDs
PROVIDER_IDS: Dict[str, int] = {
    "netflix": 8,
    "prime": 119,
    "disney": 337,
    "hbo": 1899,
    "apple": 350,
}
STREAMING_SERVICES: List[str] = list(PROVIDER_IDS)

TOP10_PREFIX = "top10-"
GLOBAL_PREFIX = "global"
CALENDAR_PREFIX = "calendar-"

GLOBAL_KEYS = ["global-movies", "global-series"]
CAROUSEL_KEYS = ["now-playing", "popular-movies", "on-the-air", "popular-tv", "trending"]
CALENDAR_KEYS = ["calendar-movies", "calendar-tv", "calendar-overall"]


def _build_key_registry() -> Dict[str, CacheClass]:
    registry: Dict[str, CacheClass] = {}
    for service in STREAMING_SERVICES:
        registry[f"{TOP10_PREFIX}{service}"] = CacheClass.PROVIDER_TOP10
    for key in GLOBAL_KEYS:
        registry[key] = CacheClass.GLOBAL_TOP10
    for key in CAROUSEL_KEYS:
        registry[key] = CacheClass.CAROUSEL
    for key in CALENDAR_KEYS:
        registry[key] = CacheClass.CALENDAR
    return registry


# All 15 known cache keys, in evaluation order
CACHE_KEYS: Dict[str, CacheClass] = _build_key_registry()


def get_class_for_key(key: str) -> CacheClass:
    """
    Determine the cache class of a cache key.

    Raises:
        KeyError: If the key is not one of the known cache keys
    """
    return CACHE_KEYS[key]


def get_ttl_for_class(cache_class: CacheClass) -> Tuple[int, int]:
    """
    Get TTL configuration for a cache class.

    Returns:
        (ttl_ms, priority_weight)
    """
    config = TTL_CONFIG[cache_class]
    return config["ttl_ms"], config["priority"]


def is_known_key(key: str) -> bool:
    return key in CACHE_KEYS


def get_group_keys(key: str) -> List[str]:
    """
    Keys written together with a cache key by one refresh.

    Each provider Top 10 is refreshed alone; the other classes refresh
    every key of the class at once.

    Raises:
        KeyError: If the key is not one of the known cache keys
    """
    cache_class = CACHE_KEYS[key]
    if cache_class == CacheClass.PROVIDER_TOP10:
        return [key]
    return [k for k, c in CACHE_KEYS.items() if c == cache_class]
