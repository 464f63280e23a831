"""In-memory health registry for the proxy.

Collects circuit breaker states, upstream error counters and cache statistics
so the health endpoint can report them.  Everything lives in process memory
and is safe to update from concurrent requests.
"""
from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Dict, Mapping

from .resilience import BreakerState

if TYPE_CHECKING:  # pragma: no cover
    from .cache import TTLCache


class HealthRegistry:
    """Stores breaker states, upstream error counters and cache handles."""

    def __init__(self) -> None:
        self._breakers: Dict[str, BreakerState] = {}
        self._upstream_errors: Dict[str, int] = {}
        self._caches: Dict[str, "TTLCache"] = {}
        self._lock = Lock()

    # -- Circuit breakers ---------------------------------------------------
    def record_breaker_state(self, name: str, state: BreakerState) -> None:
        if not name:
            raise ValueError("breaker name must be provided")
        with self._lock:
            self._breakers[name] = state

    # -- Upstream errors ----------------------------------------------------
    def record_upstream_error(self, category: str, increment: int = 1) -> None:
        if not category:
            raise ValueError("category must be provided")
        if increment <= 0:
            raise ValueError("increment must be positive")
        with self._lock:
            self._upstream_errors[category] = self._upstream_errors.get(category, 0) + increment

    # -- Caches -------------------------------------------------------------
    def register_cache(self, cache: "TTLCache") -> None:
        with self._lock:
            self._caches[cache.name] = cache

    # -- Snapshot -----------------------------------------------------------
    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            breakers = {name: state.as_dict() for name, state in self._breakers.items()}
            errors = dict(self._upstream_errors)
            caches = dict(self._caches)
        cache_stats: Mapping[str, Dict[str, int]] = {name: cache.stats() for name, cache in caches.items()}
        status = "UP"
        if any(state["state"] != "CLOSED" for state in breakers.values()):
            status = "DEGRADED"
        return {
            "status": status,
            "breakers": breakers,
            "upstream_errors": errors,
            "caches": dict(cache_stats),
        }


__all__ = ["HealthRegistry"]
