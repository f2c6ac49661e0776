"""
Core cache data structures.
"""
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List
from enum import Enum


class CacheClass(Enum):
    """Classes of cached listings with different refresh behaviors."""
    PROVIDER_TOP10 = "provider_top10"   # 30 minutes, weight 1
    GLOBAL_TOP10 = "global_top10"       # 30 minutes, weight 1
    CAROUSEL = "carousel"               # 1 hour, weight 2
    CALENDAR = "calendar"               # 6 hours, weight 3


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """
    One cached listing document, stored under its cache key.

    Written wholesale on every refresh; expires_at is advisory only.
    """
    key: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    last_updated: int = 0
    expires_at: int = 0

    def to_document(self) -> Dict[str, Any]:
        """Convert to the stored document shape."""
        return {
            "items": self.items,
            "lastUpdated": self.last_updated,
            "expiresAt": self.expires_at,
            "cacheType": self.key,
        }

    @classmethod
    def from_document(cls, key: str, doc: Dict[str, Any]) -> "CacheEntry":
        """Build an entry from a stored document."""
        return cls(
            key=key,
            items=doc.get("items") or [],
            last_updated=doc.get("lastUpdated") or 0,
            expires_at=doc.get("expiresAt") or 0,
        )


@dataclass
class StalenessCandidate:
    """
    Refresh candidate computed per invocation.

    priority 0 means fresh; 1/2/3 mirror the class weight once past TTL.
    """
    type: str
    age: float
    priority: int

    @property
    def is_stale(self) -> bool:
        return self.priority > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        return {
            "type": self.type,
            "ageSeconds": None if math.isinf(self.age) else round(self.age / 1000, 1),
            "priority": self.priority,
        }
