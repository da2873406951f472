"""
Caching for reflected schema metadata.

Reflected column lists are kept in cachetools TTLCaches, one per engine, so
they expire on their own after a migration. Mapped-table metadata is never
cached; it is already in memory.
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Thread-safe singleton holding every named TTL cache.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 50, ttl: int = 600) -> cachetools.TTLCache:
        """Get or create the TTL cache with the given name."""
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_for_table(self, table_name: str) -> None:
        """Drop every cached entry whose key mentions the table.

        Call after altering a table so the next registration re-reflects it.
        """
        table_lower = table_name.lower()
        with self._lock:
            for cache in self._caches.values():
                stale = [key for key in list(cache.keys()) if table_lower in str(key).lower()]
                for key in stale:
                    cache.pop(key, None)
                    logger.debug(f'Cleared cache entry {key} for table {table_name}')


def get_schema_cache(connection_id: int | str | None = None) -> cachetools.TTLCache:
    """Schema cache for one engine/connection, or the global one for None.
    """
    cache_name = f'schema_{connection_id}' if connection_id else 'schema_global'
    return Cache.get_instance().get_cache(cache_name)


def cacheable_reflection(kind: str):
    """Decorator caching a host reflection method per engine and table.

    The wrapped method takes ``(self, table)`` where ``self.engine`` is the
    engine being reflected; results are keyed ``kind:schema:table``.
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, table):
            cache = get_schema_cache(id(self.engine))
            cache_key = f'{kind}:{table.schema or ""}:{table.name}'.lower()
            if cache_key in cache:
                logger.debug(f'Cache hit for {method.__name__}({table.name})')
                return cache[cache_key]

            logger.debug(f'Cache miss for {method.__name__}({table.name})')
            result = method(self, table)
            cache[cache_key] = result
            return result

        return wrapper
    return decorator
