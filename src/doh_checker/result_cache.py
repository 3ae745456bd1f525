"""
In-memory, time-bounded cache of batch results.

Entries are keyed by the normalized base name and the sorted TLD list.
An entry older than the TTL is ignored; entries are never mutated, only
replaced by a later batch for the same key.
"""

import time
from typing import Callable, Iterable, Optional

from .models import CacheEntry, DomainResult

DEFAULT_TTL_SECONDS = 300.0


class ResultCache:
    """Batch result cache with a fixed TTL."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(base_name: str, tlds: Iterable[str]) -> str:
        """``<base>:<tld1>,<tld2>`` with TLDs sorted and unique."""
        return f"{base_name.lower()}:{','.join(sorted(set(tlds)))}"

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at < self._ttl_seconds

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for key, or None when missing. Stale entries are evicted."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self.is_fresh(entry):
            del self._entries[key]
            return None
        return entry

    def put(self, key: str, results: Iterable[DomainResult]) -> CacheEntry:
        """Store results, replacing any previous entry for the key."""
        entry = CacheEntry(key=key, results=tuple(results), created_at=self._clock())
        self._entries[key] = entry
        return entry

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or every entry when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
