"""Tests for the background cache sweeper."""
from __future__ import annotations

import threading
import time

import pytest

from analytics_mcp.infrastructure.cache import CacheStore
from analytics_mcp.infrastructure.sweeper import CacheSweeper


def test_sweep_removes_expired_entries_from_all_stores(clock) -> None:  # type: ignore[no-untyped-def]
    first = CacheStore()
    second = CacheStore()
    first.set("stale", 1, ttl_ms=100)
    first.set("fresh", 2, ttl_ms=10_000)
    second.set("stale", 3, ttl_ms=50)

    sweeper = CacheSweeper()
    sweeper.register(first)
    sweeper.register(second)
    clock.advance_ms(200)

    assert sweeper.sweep() == 2
    assert len(first) == 1
    assert len(second) == 0
    assert first.get("fresh") == 2


def test_register_same_store_twice_is_ignored(clock) -> None:  # type: ignore[no-untyped-def]
    store = CacheStore()
    store.set("stale", 1, ttl_ms=10)
    sweeper = CacheSweeper()
    sweeper.register(store)
    sweeper.register(store)
    clock.advance_ms(20)
    assert sweeper.sweep() == 1


def test_background_thread_sweeps_until_stopped() -> None:
    store = CacheStore()
    store.set("stale", 1, ttl_ms=1)
    sweeper = CacheSweeper(interval_s=0.01)
    sweeper.register(store)
    time.sleep(0.005)

    sweeper.start()
    try:
        deadline = time.monotonic() + 2.0
        while len(store) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(store) == 0
        assert sweeper.running
    finally:
        sweeper.stop()
    assert not sweeper.running


def test_start_twice_keeps_single_thread() -> None:
    sweeper = CacheSweeper(interval_s=10)
    sweeper.start()
    first = sweeper._thread
    sweeper.start()
    try:
        assert sweeper._thread is first
        assert sweeper.running
    finally:
        sweeper.stop()


def test_stop_without_start_is_noop() -> None:
    CacheSweeper().stop()


def test_failing_sweep_is_logged_and_loop_continues(caplog) -> None:  # type: ignore[no-untyped-def]
    calls = threading.Event()

    class BrokenStore(CacheStore):
        def evict_expired(self) -> int:
            calls.set()
            raise RuntimeError("boom")

    sweeper = CacheSweeper(interval_s=0.01)
    sweeper.register(BrokenStore())
    sweeper.start()
    try:
        assert calls.wait(2.0)
        time.sleep(0.05)
        assert sweeper.running
    finally:
        sweeper.stop()
    assert "Cache sweep failed" in caplog.text


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        CacheSweeper(interval_s=0)
