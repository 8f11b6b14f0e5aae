from __future__ import annotations

import logging
import threading
import time
from typing import Any

from analytics_mcp.domain.entities import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_MS = 5 * 60 * 1000  # 5 minutes


def _now_ms() -> float:
    return time.monotonic() * 1000


class CacheStore:
    """Bounded in-process TTL cache with tag bookkeeping.

    Every access takes the store lock because the background sweeper runs on
    its own thread. When full, inserting a new key evicts the entry that
    expires soonest.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl_ms: int = DEFAULT_TTL_MS,
    ) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if default_ttl_ms <= 0:
            raise ValueError(f"default_ttl_ms must be positive, got {default_ttl_ms}")
        self._max_size = max_size
        self._default_ttl_ms = default_ttl_ms
        self._entries: dict[str, CacheEntry] = {}
        self._tags: dict[str, set[str]] = {}  # tag -> keys
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def default_ttl_ms(self) -> int:
        return self._default_ttl_ms

    def get(self, key: str) -> Any | None:
        """Return cached value or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_live(_now_ms()):
                self._remove(key)
                self._expirations += 1
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl_ms: int | None = None,
        tag: str | None = None,
    ) -> None:
        """Store value for ttl_ms milliseconds. Uses default_ttl_ms when ttl_ms is None."""
        effective_ttl = ttl_ms if ttl_ms is not None else self._default_ttl_ms
        if effective_ttl <= 0:
            raise ValueError(f"ttl_ms must be positive, got {effective_ttl}")
        with self._lock:
            if key in self._entries:
                # Overwrite: drop the old tag link, never evict.
                self._remove(key)
            elif len(self._entries) >= self._max_size:
                self._evict_soonest_expiring()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at_ms=_now_ms(),
                ttl_ms=effective_ttl,
                tag=tag,
            )
            if tag is not None:
                self._tags.setdefault(tag, set()).add(key)

    def delete(self, key: str) -> None:
        """Remove a specific key immediately."""
        with self._lock:
            self._remove(key)

    def clear(self) -> None:
        """Remove all cached entries."""
        with self._lock:
            self._entries.clear()
            self._tags.clear()

    def clear_tag(self, tag: str) -> int:
        """Remove every entry stored under tag. Returns the number removed."""
        with self._lock:
            keys = self._tags.pop(tag, set())
            for key in keys:
                self._entries.pop(key, None)
        if keys:
            logger.debug("Cleared %d cache entries tagged %s", len(keys), tag)
        return len(keys)

    def clear_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix. Returns the number removed."""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                self._remove(key)
        if keys:
            logger.debug("Cleared %d cache entries with prefix %s", len(keys), prefix)
        return len(keys)

    def evict_expired(self) -> int:
        """Remove all expired entries from the store. Returns the number removed."""
        now = _now_ms()
        with self._lock:
            expired_keys = [k for k, e in self._entries.items() if not e.is_live(now)]
            for key in expired_keys:
                self._remove(key)
            self._expirations += len(expired_keys)
        return len(expired_keys)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_size=self._max_size,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                tags={tag: len(keys) for tag, keys in self._tags.items()},
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Live membership check; does not count as a hit or remove anything."""
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and entry.is_live(_now_ms())

    def _evict_soonest_expiring(self) -> None:
        # Caller holds the lock and guarantees the store is non-empty.
        victim = min(self._entries.values(), key=lambda e: e.expires_at_ms)
        self._remove(victim.key)
        self._evictions += 1
        logger.debug("Evicted cache entry %s (store full at %d)", victim.key, self._max_size)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None or entry.tag is None:
            return
        keys = self._tags.get(entry.tag)
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._tags[entry.tag]
