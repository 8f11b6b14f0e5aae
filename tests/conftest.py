"""Shared pytest fixtures for the school analytics MCP test suite."""
from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest

from analytics_mcp.application.cache_registry import CacheRegistry
from analytics_mcp.infrastructure.cache import CacheStore


class FakeClock:
    """Stands in for the time module used by the cache store."""

    def __init__(self, start_ms: int = 1_000_000) -> None:
        self.now_ms = start_ms

    def monotonic(self) -> float:
        return self.now_ms / 1000

    def advance_ms(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> Iterator[FakeClock]:
    """Freeze the cache store clock; advance it with clock.advance_ms()."""
    fake = FakeClock()
    with patch("analytics_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.side_effect = fake.monotonic
        yield fake


@pytest.fixture
def store() -> CacheStore:
    return CacheStore(max_size=100, default_ttl_ms=60_000)


@pytest.fixture
def registry(store: CacheStore) -> CacheRegistry:
    return CacheRegistry(store)


@pytest.fixture
def sample_record() -> dict:  # type: ignore[type-arg]
    """Sample performance record matching the school API response schema."""
    return {
        "id": "pa_1",
        "studentId": "stu_42",
        "activityId": "act_7",
        "classId": "cls_3",
        "subjectId": "sub_math",
        "score": 18,
        "maxScore": 20,
        "percentage": 90.0,
        "engagementScore": 75.0,
        "demonstratedLevel": "APPLY",
        "gradedAt": "2026-10-12T09:30:00+00:00",
    }
