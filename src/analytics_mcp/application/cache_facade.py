from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar, Union

from analytics_mcp.domain.value_objects import JSONValue
from analytics_mcp.infrastructure.cache import CacheStore
from analytics_mcp.infrastructure.keys import build_key

logger = logging.getLogger(__name__)

T = TypeVar("T")
Factory = Callable[[], Union[Awaitable[T], T]]


class CacheFacade:
    """Compute-if-absent access to one namespace of a CacheStore.

    Concurrent misses on the same key share a single factory call. An
    invalidation bumps the facade generation so factories that started
    earlier hand their result back to callers without writing it.
    """

    def __init__(
        self,
        store: CacheStore,
        namespace: str,
        default_ttl_ms: int | None = None,
    ) -> None:
        if default_ttl_ms is not None and default_ttl_ms <= 0:
            raise ValueError(f"default_ttl_ms must be positive, got {default_ttl_ms}")
        self._store = store
        self._namespace = namespace
        self._default_ttl_ms = default_ttl_ms if default_ttl_ms is not None else store.default_ttl_ms
        self._generation = 0
        self._in_flight: dict[str, asyncio.Future[Any]] = {}

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def default_ttl_ms(self) -> int:
        return self._default_ttl_ms

    def key_for(self, params: Mapping[str, JSONValue]) -> str:
        """Raises KeySerializationError when params cannot be keyed."""
        return build_key(self._namespace, params)

    async def get_or_compute(
        self,
        params: Mapping[str, JSONValue],
        factory: Factory[T],
        ttl_override_ms: int | None = None,
    ) -> T:
        """Return the cached value for params, running factory on a miss.

        Factory errors propagate unchanged and nothing is cached. A None
        result is returned but not stored.
        """
        key = self.key_for(params)
        cached = self._store.get(key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        task = self._in_flight.get(key)
        # a done task is only waiting for its release callback
        if task is None or task.done():
            ttl_ms = ttl_override_ms if ttl_override_ms is not None else self._default_ttl_ms
            task = asyncio.ensure_future(
                self._compute(key, factory, ttl_ms, self._generation)
            )
            self._in_flight[key] = task
            task.add_done_callback(lambda done, k=key: self._release(k, done))
        # shield: one cancelled caller must not cancel the computation for the others
        return await asyncio.shield(task)  # type: ignore[no-any-return]

    def contains(self, params: Mapping[str, JSONValue]) -> bool:
        """True when a live entry exists. Does not count as a hit or miss."""
        return self.key_for(params) in self._store

    def get(self, params: Mapping[str, JSONValue]) -> Any | None:
        return self._store.get(self.key_for(params))

    def set(
        self,
        params: Mapping[str, JSONValue],
        value: Any,
        ttl_override_ms: int | None = None,
    ) -> None:
        ttl_ms = ttl_override_ms if ttl_override_ms is not None else self._default_ttl_ms
        self._store.set(self.key_for(params), value, ttl_ms=ttl_ms, tag=self._namespace)

    def delete(self, params: Mapping[str, JSONValue]) -> None:
        self._store.delete(self.key_for(params))

    def invalidate(self) -> int:
        """Drop every entry of this namespace. Returns the number removed."""
        self._generation += 1
        self._in_flight.clear()
        removed = self._store.clear_tag(self._namespace)
        logger.debug("Invalidated namespace %s (%d entries)", self._namespace, removed)
        return removed

    async def _compute(
        self,
        key: str,
        factory: Factory[T],
        ttl_ms: int,
        generation: int,
    ) -> T:
        result = factory()
        if inspect.isawaitable(result):
            result = await result
        if result is not None and generation == self._generation:
            self._store.set(key, result, ttl_ms=ttl_ms, tag=self._namespace)
        return result  # type: ignore[return-value]

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # mark the error retrieved; every shielded waiter may have been cancelled
        if not task.cancelled():
            task.exception()
