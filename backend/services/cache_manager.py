"""
In-process cache for aggregated dashboard data.

Maps opaque string keys to values with a per-entry expiry. Expired entries
are hidden on read and reclaimed by a periodic cleanup() sweep. Hit/miss
counters feed the status endpoint.

State lives on the instance; backend.main creates one per process.
"""

import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a glob where only * is special into an anchored regex."""
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


class CacheManager:
    """Expiring key-value store with hit/miss accounting."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def set(self, key: str, value: Any, ttl_seconds: int = 3600) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for key, or None (evicting it if expired)."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry. Counters are kept."""
        self._entries.clear()

    def keys(self) -> list[str]:
        """Snapshot of stored keys, including expired ones not yet evicted."""
        return list(self._entries)

    def clear_by_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Only * is a wildcard; every other character matches literally and
        the pattern must cover the whole key.
        """
        regex = glob_to_regex(pattern)
        matched = [key for key in self._entries if regex.fullmatch(key)]
        for key in matched:
            self.delete(key)
        return len(matched)

    def size(self) -> int:
        return len(self._entries)

    def get_hit_rate(self):
        """Hit rate as a percentage string with two decimals, 0 before any lookup."""
        total = self.hits + self.misses
        return f"{self.hits / total * 100:.2f}" if total > 0 else 0

    def cleanup(self) -> int:
        """Evict all expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            print(f"[Cache] Swept {len(expired)} expired entries ({self.size()} remaining)")
        return len(expired)
