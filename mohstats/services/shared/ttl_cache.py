"""Time-bounded response cache shared by all upstream callers.

Entries are replaced as a whole on refresh and expire purely by age. A
failed refresh leaves the previous entry untouched.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from mohstats.config import CACHE_TTL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    fetched_at: float


class TTLCache:
    def __init__(self, ttl: float = CACHE_TTL, clock: Callable[[], float] = time.time) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # One lock per key currently being fetched, so cold callers share a fetch
        self._inflight: Dict[str, threading.Lock] = {}
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def _fresh(self, key: str, ttl: float) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < ttl:
            return entry
        return None

    def get(self, key: str, ttl: Optional[float] = None) -> Optional[Any]:
        """Return the fresh value for key, or None."""
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            entry = self._fresh(key, ttl)
        return entry.value if entry is not None else None

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """Return the cached value for key, calling fetch_fn when absent or expired.

        Exceptions raised by fetch_fn propagate to this caller only; the
        stored entry (fresh or stale) is left as it was.
        """
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            entry = self._fresh(key, ttl)
            if entry is not None:
                self._hits += 1
                return entry.value
            key_lock = self._inflight.setdefault(key, threading.Lock())

        with key_lock:
            # Another caller may have refreshed the slot while we waited
            with self._lock:
                entry = self._fresh(key, ttl)
                if entry is not None:
                    self._hits += 1
                    return entry.value
                self._misses += 1

            try:
                value = fetch_fn()
                with self._lock:
                    self._entries[key] = CacheEntry(key=key, value=value, fetched_at=self._clock())
            except Exception:
                with self._lock:
                    self._errors += 1
                raise
            finally:
                with self._lock:
                    if self._inflight.get(key) is key_lock:
                        self._inflight.pop(key, None)

            logger.debug("Cached fresh response for key: %s", key)
            return value

    def clear(self, key: Optional[str] = None) -> int:
        """Purge one entry, or every entry when key is None. Returns the count removed."""
        with self._lock:
            if key is not None:
                removed = 1 if self._entries.pop(key, None) is not None else 0
                logger.info("Cleared cache for key: %s", key)
            else:
                removed = len(self._entries)
                self._entries.clear()
                logger.info("Cleared all cache (%d entries)", removed)
        return removed

    def keys(self):
        with self._lock:
            return sorted(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "ttl": self.ttl,
                "hits": self._hits,
                "misses": self._misses,
                "errors": self._errors,
                "hit_rate": round(self._hits / total, 3) if total else None,
            }
