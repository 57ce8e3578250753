"""
In-memory cache store with per-entry absolute expiry.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Hashable, Optional

from .core import CacheEntry
from ..models import Reading

logger = logging.getLogger("cache.store")


class CacheStore:
    """
    Mapping from query key to cache entry.

    Expiry is a visibility rule: get() treats an entry past its expires_at as
    absent and drops it lazily, there is no background sweeper. Writers for
    the same key must be serialized by the caller (KeyLockManager); the
    internal lock only keeps operations on different keys safe.
    """

    def __init__(self, clock: Callable[[], datetime]):
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: Hashable, now: Optional[datetime] = None) -> Optional[CacheEntry]:
        """
        Look up the live entry for a key.

        Args:
            key: Query key
            now: Time to judge expiry against (defaults to the store clock)

        Returns:
            The entry, or None if there is none or it has expired
        """
        if now is None:
            now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug(f"Pruned expired entry: {key!r}")
                return None
            return entry

    def set(self, key: Hashable, reading: Reading, expires_at: datetime) -> CacheEntry:
        """Store a reading for a key until expires_at."""
        entry = CacheEntry(reading=reading, expires_at=expires_at)
        with self._lock:
            self._entries[key] = entry
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
