"""Bounded memo table for classification results."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from hashlib import sha1
from itertools import islice

from droplet_router.config import CacheConfig
from droplet_router.types import ClassificationResult

logger = logging.getLogger(__name__)


def cache_key(text: str) -> str:
    """Stable key for the exact input text (case-sensitive, unnormalized)."""
    return sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class CacheStats:
    size: int
    memory_bytes: int
    hits: int
    misses: int
    evictions: int


class ResultCache:
    """Insertion-ordered cache bounded by entry count and estimated memory.

    Eviction runs inside `put` before a new key is stored: when the table is
    at `entry_limit` entries or at `memory_limit_bytes`, the oldest half of
    the entries (by insertion, not by access) is dropped, repeatedly until
    the table is back under both limits or down to one entry. Reads never
    reorder entries. Limits are read from the shared `CacheConfig` on every
    insertion so runtime changes apply immediately.
    """

    def __init__(self, config: CacheConfig | None = None) -> None:
        self.config = config or CacheConfig()
        self._entries: dict[str, ClassificationResult] = {}
        self._sizes: dict[str, int] = {}
        self._memory_bytes = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> ClassificationResult | None:
        result = self._entries.get(key)
        if result is None:
            self._misses += 1
            return None
        self._hits += 1
        return result

    def put(self, key: str, value: ClassificationResult) -> None:
        if key in self._entries:
            self._memory_bytes -= self._sizes[key]
        else:
            while self._over_bounds() and self._purge_oldest_half():
                pass

        size = _estimate_size(key, value)
        self._entries[key] = value
        self._sizes[key] = size
        self._memory_bytes += size

    def clear(self) -> None:
        self._entries.clear()
        self._sizes.clear()
        self._memory_bytes = 0

    @property
    def memory_bytes(self) -> int:
        return self._memory_bytes

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            memory_bytes=self._memory_bytes,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _over_bounds(self) -> bool:
        return (
            len(self._entries) >= self.config.entry_limit
            or self._memory_bytes >= self.config.memory_limit_bytes
        )

    def _purge_oldest_half(self) -> bool:
        count = len(self._entries) // 2
        if count == 0:
            return False
        logger.info(
            "Purging %d of %d cached classifications (limit=%d entries, %d bytes in use)",
            count,
            len(self._entries),
            self.config.entry_limit,
            self._memory_bytes,
        )
        for key in list(islice(self._entries, count)):
            del self._entries[key]
            self._memory_bytes -= self._sizes.pop(key)
        self._evictions += count
        return True


def _estimate_size(key: str, value: ClassificationResult) -> int:
    return (
        sys.getsizeof(key)
        + sys.getsizeof(value)
        + sys.getsizeof(value.topic)
        + sys.getsizeof(value.confidence)
        + sys.getsizeof(value.computed_at)
    )
