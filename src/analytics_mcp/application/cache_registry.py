from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from analytics_mcp.application.cache_facade import CacheFacade
from analytics_mcp.domain.value_objects import CacheNamespace
from analytics_mcp.infrastructure.cache import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheRegistry:
    """Owns the process-wide CacheStore and one CacheFacade per namespace.

    Built once at startup and passed to the services that cache.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._facades: dict[str, CacheFacade] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    def facade(
        self,
        namespace: CacheNamespace | str,
        default_ttl_ms: int | None = None,
    ) -> CacheFacade:
        """Return the facade for namespace, creating it on first use.

        default_ttl_ms only applies when the facade is created.
        """
        name = _name(namespace)
        facade = self._facades.get(name)
        if facade is None:
            facade = CacheFacade(self._store, name, default_ttl_ms=default_ttl_ms)
            self._facades[name] = facade
        return facade

    def namespaces(self) -> list[str]:
        return sorted(self._facades)

    def invalidate(self, namespace: CacheNamespace | str) -> int:
        name = _name(namespace)
        facade = self._facades.get(name)
        if facade is not None:
            return facade.invalidate()
        return self._store.clear_tag(name)

    def invalidate_prefix(self, prefix: str) -> int:
        """Invalidate every known namespace starting with prefix."""
        removed = 0
        for name, facade in self._facades.items():
            if name.startswith(prefix):
                removed += facade.invalidate()
        # Entries written directly to the store under a matching key
        removed += self._store.clear_prefix(prefix)
        return removed

    def invalidate_all(self) -> int:
        removed = len(self._store)
        for facade in self._facades.values():
            facade.invalidate()
        self._store.clear()
        logger.info("Cleared entire cache (%d entries)", removed)
        return removed

    def stats(self) -> dict[str, Any]:
        stats = self._store.stats()
        return {
            "size": stats.size,
            "maxSize": stats.max_size,
            "hits": stats.hits,
            "misses": stats.misses,
            "hitRate": round(stats.hit_rate, 4),
            "evictions": stats.evictions,
            "expirations": stats.expirations,
            "namespaces": {name: stats.tags.get(name, 0) for name in self.namespaces()},
        }

    def cached(
        self,
        namespace: CacheNamespace | str,
        ttl_ms: int | None = None,
    ) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
        """Decorate an async function so its results are cached under namespace.

        The wrapped function must be called with keyword arguments only; they
        become the cache params.
        """

        def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
            @functools.wraps(fn)
            async def wrapper(*args: Any, **kwargs: Any) -> T:
                if args:
                    raise TypeError(f"{fn.__name__}() cached calls take keyword arguments only")
                facade = self.facade(namespace)
                return await facade.get_or_compute(
                    kwargs, lambda: fn(**kwargs), ttl_override_ms=ttl_ms
                )

            return wrapper

        return decorator


def _name(namespace: CacheNamespace | str) -> str:
    return namespace.value if isinstance(namespace, CacheNamespace) else namespace
