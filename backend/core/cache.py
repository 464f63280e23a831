"""In-process TTL cache with a least-recently-used size bound."""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_SIZE = 1000

EXPIRED = "expired"
SIZE = "size"


@dataclass
class CacheEntry(Generic[K, V]):
    key: K
    value: V
    inserted_at: float


class TTLCache(Generic[K, V]):
    """Keyed store where entries expire ``ttl`` seconds after insertion.

    When more than ``max_size`` entries are held the least recently used one
    is dropped.  ``None`` and empty collections are never stored, so a later
    lookup for the same key misses and the caller goes upstream again.
    """

    def __init__(
        self,
        name: str,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        time_func: Callable[[], float] = time.monotonic,
        on_evict: Optional[Callable[[K, str], None]] = None,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.name = name
        self.ttl = ttl
        self.max_size = max_size
        self._time_func = time_func
        self._on_evict = on_evict
        self._storage: "OrderedDict[K, CacheEntry[K, V]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._log = logging.getLogger(self.__class__.__name__)

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            entry = self._storage.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry):
                self._evict(key, EXPIRED)
                self._misses += 1
                return None
            self._storage.move_to_end(key)
            self._hits += 1
            return entry.value

    def put(self, key: K, value: V) -> bool:
        """Store ``value``; returns ``False`` when the value was not cacheable."""
        if not _is_cacheable(value):
            return False
        with self._lock:
            self._storage[key] = CacheEntry(key, value, self._time_func())
            self._storage.move_to_end(key)
            self._purge_expired()
            while len(self._storage) > self.max_size:
                oldest = next(iter(self._storage))
                self._evict(oldest, SIZE)
        return True

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "keys": len(self._storage),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            entry = self._storage.get(key)
            return entry is not None and not self._is_expired(entry)

    # helpers ------------------------------------------------------------
    def _is_expired(self, entry: CacheEntry[K, V]) -> bool:
        return self._time_func() - entry.inserted_at > self.ttl

    def _purge_expired(self) -> None:
        # Entries are ordered by recency, not age, so scan all of them.
        expired = [key for key, entry in self._storage.items() if self._is_expired(entry)]
        for key in expired:
            self._evict(key, EXPIRED)

    def _evict(self, key: K, cause: str) -> None:
        self._storage.pop(key, None)
        self._evictions += 1
        self._log.debug("Cache eviction: cache=%s key=%s, cause=%s", self.name, key, cause)
        if self._on_evict is not None:
            self._on_evict(key, cause)


def _is_cacheable(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple, dict, set, frozenset)) and not value:
        return False
    return True


__all__ = ["TTLCache", "CacheEntry", "DEFAULT_TTL_SECONDS", "DEFAULT_MAX_SIZE", "EXPIRED", "SIZE"]
