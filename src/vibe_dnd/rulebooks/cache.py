"""
TTL-based cache for upstream catalog responses.

Entries are keyed by the fully resolved upstream URL and hold the decoded
JSON payload of a successful response. Entries never outlive the catalog
freshness window of 24 hours.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("vibe-dnd")

MAX_TTL = 86400  # 24 hours


@dataclass
class CacheEntry:
    """Single cached payload with TTL metadata.

    Attributes:
        key: Resolved upstream URL.
        payload: Decoded JSON body.
        created_at: Timestamp when entry was created.
        ttl: Time to live in seconds.
    """
    key: str
    payload: Any
    created_at: float
    ttl: int


@dataclass
class ResponseCacheStats:
    """Statistics for the response cache."""
    total_entries: int
    hit_count: int
    miss_count: int
    expired_count: int
    hit_rate: float


class ResponseCache:
    """TTL cache for catalog responses.

    Usage:
        cache = ResponseCache(ttl=3600)
        cache.store("https://api.open5e.com/v2/classes/?limit=100", payload)
        payload = cache.get("https://api.open5e.com/v2/classes/?limit=100")
    """

    def __init__(self, ttl: int = MAX_TTL) -> None:
        """Initialize the cache.

        Args:
            ttl: Time to live for entries in seconds, at most 24 hours.

        Raises:
            ValueError: If ttl is not positive or exceeds MAX_TTL
        """
        if ttl <= 0 or ttl > MAX_TTL:
            raise ValueError(f"ttl must be between 1 and {MAX_TTL} seconds, got {ttl}")
        self.ttl = ttl
        self._cache: dict[str, CacheEntry] = {}
        self._hit_count = 0
        self._miss_count = 0
        self._expired_count = 0

    def store(self, key: str, payload: Any) -> None:
        """Store a payload, replacing any existing entry for the key."""
        self._cache[key] = CacheEntry(
            key=key,
            payload=copy.deepcopy(payload),
            created_at=time.time(),
            ttl=self.ttl,
        )
        logger.debug(f"Response cache: stored '{key}' (TTL: {self.ttl}s)")

    def get(self, key: str) -> Any | None:
        """Return a copy of the cached payload, or None if absent or expired.

        Expired entries are removed on access.
        """
        entry = self._cache.get(key)
        if entry is None:
            self._miss_count += 1
            return None

        if self._is_expired(entry):
            del self._cache[key]
            self._expired_count += 1
            self._miss_count += 1
            logger.debug(f"Response cache: entry '{key}' expired")
            return None

        self._hit_count += 1
        return copy.deepcopy(entry.payload)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        count = len(self._cache)
        self._cache.clear()
        if count > 0:
            logger.debug(f"Response cache: cleared {count} entries")

    def get_stats(self) -> ResponseCacheStats:
        total_lookups = self._hit_count + self._miss_count
        hit_rate = self._hit_count / total_lookups if total_lookups > 0 else 0.0
        return ResponseCacheStats(
            total_entries=len(self._cache),
            hit_count=self._hit_count,
            miss_count=self._miss_count,
            expired_count=self._expired_count,
            hit_rate=hit_rate,
        )

    def _is_expired(self, entry: CacheEntry) -> bool:
        return (time.time() - entry.created_at) >= entry.ttl

    @property
    def size(self) -> int:
        """Return the number of entries currently in the cache."""
        return len(self._cache)


__all__ = [
    "ResponseCache",
    "CacheEntry",
    "ResponseCacheStats",
    "MAX_TTL",
]
