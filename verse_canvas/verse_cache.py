"""
Bounded in-memory cache for scraped language, translation, book and chapter data.
"""

import os
import time
import logging
import threading
from typing import Any, Callable, Dict, Hashable, MutableMapping, Optional, Tuple

_MISSING = object()


class VerseCache:
    """LRU cache with optional expiry over an injectable mapping.

    The store holds ``key -> (stored_at, value)`` and must keep insertion
    order (a plain dict does); recently used keys are re-inserted at the end,
    so the first key is always the eviction candidate.
    """

    def __init__(self, store: Optional[MutableMapping[Hashable, Tuple[float, Any]]] = None,
                 max_entries: Optional[int] = None, ttl_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = logging.getLogger(__name__)
        self.store = store if store is not None else {}
        self.max_entries = max_entries if max_entries is not None else int(os.getenv('CACHE_MAX_ENTRIES', '512'))
        ttl = ttl_seconds if ttl_seconds is not None else float(os.getenv('CACHE_TTL_SECONDS', '0'))
        self.ttl_seconds = ttl if ttl > 0 else None  # 0 disables expiry
        self.clock = clock
        self.lock = threading.Lock()
        self.stats = {'hits': 0, 'misses': 0, 'evictions': 0, 'expired': 0}

    def _is_expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and self.clock() - stored_at > self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self.lock:
            entry = self.store.get(key, _MISSING)
            if entry is _MISSING:
                self.stats['misses'] += 1
                return default

            stored_at, value = entry
            if self._is_expired(stored_at):
                del self.store[key]
                self.stats['expired'] += 1
                self.stats['misses'] += 1
                self.logger.debug(f"Cache entry expired: {key}")
                return default

            # Move to the most recently used end
            del self.store[key]
            self.store[key] = entry
            self.stats['hits'] += 1
            return value

    def set(self, key: Hashable, value: Any):
        with self.lock:
            if key in self.store:
                del self.store[key]
            self.store[key] = (self.clock(), value)

            while self.max_entries > 0 and len(self.store) > self.max_entries:
                oldest = next(iter(self.store))
                del self.store[oldest]
                self.stats['evictions'] += 1
                self.logger.debug(f"Evicted cache entry: {oldest}")

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Cached value for key, calling loader and caching its result on a miss.

        The loader runs outside the lock; concurrent misses may load twice.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        self.set(key, value)
        return value

    def __contains__(self, key: Hashable) -> bool:
        with self.lock:
            entry = self.store.get(key, _MISSING)
            return entry is not _MISSING and not self._is_expired(entry[0])

    def __len__(self) -> int:
        with self.lock:
            return len(self.store)

    def clear(self):
        with self.lock:
            self.store.clear()
            self.logger.info("Verse cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                'entries': len(self.store),
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl_seconds,
                **self.stats,
            }
