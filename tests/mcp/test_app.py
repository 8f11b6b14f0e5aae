"""Tests for application wiring."""
from __future__ import annotations

from analytics_mcp.domain.value_objects import CacheNamespace
from analytics_mcp.infrastructure.settings import Settings
from analytics_mcp.mcp import build_services


async def test_services_share_one_cache() -> None:
    services = build_services(Settings(cache_max_size=10, cache_default_ttl_ms=1_000))
    try:
        store = services.registry.store
        assert store.max_size == 10
        assert store.default_ttl_ms == 1_000
        assert set(services.registry.namespaces()) == {
            CacheNamespace.PERFORMANCE_RECORDS.value,
            CacheNamespace.STUDENT_SUMMARY.value,
            CacheNamespace.CLASS_ACTIVITY.value,
            CacheNamespace.REALTIME.value,
            CacheNamespace.STUDENTS.value,
            CacheNamespace.USERS.value,
        }
        assert not services.sweeper.running
    finally:
        await services.client.close()
