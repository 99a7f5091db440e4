"""TTL caching of upstream lookups.

Named caches:
    - applications: organization id -> application list
    - libraries: "org:app" -> library list
    - library_observations: "org:app:library" -> usage observations
"""

from .cache import APPLICATIONS, LIBRARIES, LIBRARY_OBSERVATIONS, CacheEntry, CacheManager, TTLCache

__all__ = [
    "APPLICATIONS",
    "LIBRARIES",
    "LIBRARY_OBSERVATIONS",
    "CacheEntry",
    "CacheManager",
    "TTLCache",
]
