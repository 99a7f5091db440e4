"""TTL caching for slow-changing upstream data.

Applications, per-application libraries and per-library usage observations
change slowly compared to how often an agent asks for them, so lookups go
through a ``TTLCache`` keyed by organization / entity id.

Caches are explicit instances owned by a ``CacheManager`` (itself owned by
the server context) rather than module globals, so tests get fresh caches.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from contrast_mcp.foundation.config import CacheSettings

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

APPLICATIONS = "applications"
LIBRARIES = "libraries"
LIBRARY_OBSERVATIONS = "library_observations"

logger = logging.getLogger("contrast_mcp.cache")


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    """A cached value with expiration tracking."""
    value: V
    expires_at: float


class TTLCache(Generic[K, V]):
    """Thread-safe in-memory cache with fixed TTL and bounded size.

    Expired entries are never served. When full, expired entries are dropped
    first, then the least recently used. ``get_or_compute`` runs the compute
    function outside the lock: concurrent misses on the same key may compute
    twice and the last write wins.

    Args:
        name: Logical cache name (used by invalidation and stats)
        ttl: Seconds an entry stays valid after being written
        max_entries: Capacity bound
        clock: Monotonic time source, injectable for tests
        enabled: When False nothing is stored and every lookup misses

    Example:
        >>> apps = TTLCache[str, list[Application]]("applications", ttl=300)
        >>> apps.get_or_compute(org_id, lambda: client.list_applications(org_id))
    """

    __slots__ = ("_name", "_ttl", "_max_entries", "_clock", "_entries", "_lock", "_hits", "_misses", "_enabled")

    def __init__(
        self,
        name: str,
        ttl: float,
        max_entries: int = 500_000,
        *,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._name = name
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._enabled = enabled

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> V | None:
        """Cached value if present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def put(self, key: K, value: V) -> None:
        if not self._enabled:
            return
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict_unlocked()
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
            self._entries.move_to_end(key)

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Cached value, or compute, store and return it. ``None`` results are not stored."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        if value is not None:
            self.put(key, value)
        return value

    def invalidate(self, key: K) -> bool:
        """Remove one entry. Returns whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_all(self) -> int:
        """Remove every entry. Returns count removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.info("Invalidated %d entries from %s cache", count, self._name)
        return count

    def _evict_unlocked(self) -> None:
        """Drop expired entries, then least recently used until below capacity. Caller must hold lock."""
        now = self._clock()
        for key in [k for k, e in self._entries.items() if now >= e.expires_at]:
            del self._entries[key]
        while len(self._entries) >= self._max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and self._clock() < entry.expires_at

    def stats(self) -> dict[str, object]:
        """Cache statistics for monitoring."""
        with self._lock:
            now = self._clock()
            expired = sum(1 for e in self._entries.values() if now >= e.expires_at)
            return {
                "name": self._name,
                "total_entries": len(self._entries),
                "expired_entries": expired,
                "active_entries": len(self._entries) - expired,
                "hits": self._hits,
                "misses": self._misses,
                "ttl": self._ttl,
                "max_entries": self._max_entries,
            }


class CacheManager:
    """Registry of the named caches used by the tools.

    Example:
        >>> caches = CacheManager.from_settings(settings.cache)
        >>> caches.applications.get_or_compute(org_id, fetch)
        >>> caches.invalidate("applications")
        3
    """

    __slots__ = ("_caches",)

    def __init__(self, caches: dict[str, TTLCache[Hashable, object]]) -> None:
        self._caches = dict(caches)

    @classmethod
    def from_settings(cls, settings: CacheSettings, *, clock: Callable[[], float] = time.monotonic) -> CacheManager:
        opts = {"clock": clock, "enabled": settings.enabled}
        return cls({
            APPLICATIONS: TTLCache(APPLICATIONS, settings.applications_ttl, settings.max_entries, **opts),
            LIBRARIES: TTLCache(LIBRARIES, settings.libraries_ttl, settings.max_entries, **opts),
            LIBRARY_OBSERVATIONS: TTLCache(
                LIBRARY_OBSERVATIONS, settings.observations_ttl, settings.max_entries, **opts),
        })

    def get(self, name: str) -> TTLCache[Hashable, object]:
        try:
            return self._caches[name]
        except KeyError:
            raise KeyError(f"Unknown cache '{name}'. Known caches: {', '.join(self._caches)}") from None

    @property
    def applications(self) -> TTLCache[Hashable, object]:
        return self._caches[APPLICATIONS]

    @property
    def libraries(self) -> TTLCache[Hashable, object]:
        return self._caches[LIBRARIES]

    @property
    def library_observations(self) -> TTLCache[Hashable, object]:
        return self._caches[LIBRARY_OBSERVATIONS]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._caches)

    def invalidate(self, name: str) -> int:
        """Drop every entry of one named cache. Returns count removed."""
        return self.get(name).invalidate_all()

    def invalidate_all(self) -> dict[str, int]:
        return {name: cache.invalidate_all() for name, cache in self._caches.items()}

    def stats(self) -> dict[str, dict[str, object]]:
        return {name: cache.stats() for name, cache in self._caches.items()}
