"""
Upstream Response Cache - process-local TTL cache
Holds read-only projections of upstream resources for a short time
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from portal.core.config import settings
from portal.core.logging_config import logger


@dataclass(frozen=True)
class CachedUpstreamEntry:
    key: str
    payload: Any
    fetched_at: float


class CacheService:
    """
    In-memory cache for upstream responses.

    Cache Strategy:
    - Class details: CACHE_TTL_UPSTREAM (5 minutes)
    - Eviction is lazy: an expired entry is deleted when it is read
    - Entries are replaced, never mutated; concurrent fills are last-write-wins
    """

    # Key prefixes for organization
    PREFIX_CLASS = "class:"

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = settings.CACHE_TTL_UPSTREAM if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedUpstreamEntry] = {}

    @classmethod
    def class_key(cls, class_id: Any) -> str:
        return f"{cls.PREFIX_CLASS}{class_id}"

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload, or None when missing or expired"""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.fetched_at > self.ttl_seconds:
            del self._entries[key]
            logger.debug(f"Cache EXPIRED: {key}")
            return None

        logger.debug(f"Cache HIT: {key}")
        return entry.payload

    def set(self, key: str, payload: Any) -> None:
        self._entries[key] = CachedUpstreamEntry(key=key, payload=payload, fetched_at=self._clock())
        logger.debug(f"Cache SET: {key} (ttl={self.ttl_seconds}s)")

    def invalidate(self, key: str) -> bool:
        """Drop an entry. Returns True if something was removed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Cache INVALIDATED: {key}")
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
