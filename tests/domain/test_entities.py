"""Tests for domain entities."""
from __future__ import annotations

from analytics_mcp.domain.entities import CacheEntry, CacheStats, PerformanceQuery


def test_cache_entry_expiry() -> None:
    entry = CacheEntry(key="k", value=1, created_at_ms=1000.0, ttl_ms=500)
    assert entry.expires_at_ms == 1500.0
    assert entry.is_live(1499.0)
    assert not entry.is_live(1500.0)


def test_cache_stats_hit_rate() -> None:
    assert CacheStats(size=0, max_size=10).hit_rate == 0.0
    assert CacheStats(size=0, max_size=10, hits=3, misses=1).hit_rate == 0.75


def test_query_params_sort_ids_and_drop_empty_lists() -> None:
    params = PerformanceQuery(student_ids=["s2", "s1"]).to_params()
    assert params["studentIds"] == ["s1", "s2"]
    assert params["classIds"] is None
    assert params["page"] == 1
    assert params["limit"] == 50
    assert params["sortDirection"] == "desc"


def test_query_params_equal_for_reordered_ids() -> None:
    first = PerformanceQuery(activity_ids=["a", "b"], class_ids=["c"])
    second = PerformanceQuery(class_ids=["c"], activity_ids=["b", "a"])
    assert first.to_params() == second.to_params()
