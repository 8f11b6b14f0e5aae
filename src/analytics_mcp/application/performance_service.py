from __future__ import annotations

import dataclasses
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from analytics_mcp.application.cache_registry import CacheRegistry
from analytics_mcp.domain.entities import PerformanceQuery
from analytics_mcp.domain.exceptions import ValidationError
from analytics_mcp.domain.services import (
    build_pagination,
    calculate_insights,
    chunked,
    summarize_realtime,
)
from analytics_mcp.domain.value_objects import PERFORMANCE_PREFIX, CacheNamespace, EntityType
from analytics_mcp.infrastructure.school_client import SchoolApiClient

logger = logging.getLogger(__name__)

REALTIME_TTL_MS = 30 * 1000  # dashboards poll frequently
BATCH_SIZE = 100
MAX_PAGE_SIZE = 500


class PerformanceQueryService:
    """Cached performance analytics queries for dashboards and profiles."""

    def __init__(self, client: SchoolApiClient, registry: CacheRegistry) -> None:
        self._client = client
        self._registry = registry
        self._records = registry.facade(CacheNamespace.PERFORMANCE_RECORDS)
        self._summaries = registry.facade(CacheNamespace.STUDENT_SUMMARY)
        self._class_activity = registry.facade(CacheNamespace.CLASS_ACTIVITY)
        self._realtime = registry.facade(CacheNamespace.REALTIME)

    async def get_performance_records(self, query: PerformanceQuery) -> dict[str, Any]:
        """Return one page of records with pagination, insights and cache metadata.

        metadata.cacheHit is True only when the page was already stored when the
        call began; joining another caller's in-flight query reports False.
        """
        if query.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if query.sort_direction not in ("asc", "desc"):
            raise ValidationError("sort_direction must be 'asc' or 'desc'")

        started = time.perf_counter()
        params = query.to_params()
        cache_hit = self._records.contains(params)

        async def load() -> dict[str, Any]:
            raw = await self._client.get_performance_records(params)
            records: list[dict[str, Any]] = raw.get("records", [])
            total = int(raw.get("total", len(records)))
            insights = calculate_insights(records)
            return {
                "data": records,
                "pagination": dataclasses.asdict(build_pagination(query.page, query.limit, total)),
                "insights": dataclasses.asdict(insights) if insights is not None else None,
            }

        result = await self._records.get_or_compute(params, load)
        return {
            **result,
            "metadata": {
                "cacheHit": cache_hit,
                "queryTimeMs": round((time.perf_counter() - started) * 1000, 2),
                "filters": {k: v for k, v in params.items() if v is not None},
            },
        }

    async def get_student_performance_summary(
        self, student_id: str, subject_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Per-subject performance summary for one student."""
        if not student_id.strip():
            raise ValidationError("student_id cannot be empty")
        return await self._summaries.get_or_compute(
            {"studentId": student_id, "subjectId": subject_id},
            lambda: self._client.get_student_summary(student_id, subject_id),
        )

    async def get_class_activity_performance(
        self, class_id: str, activity_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Per-activity performance aggregates for one class."""
        if not class_id.strip():
            raise ValidationError("class_id cannot be empty")
        return await self._class_activity.get_or_compute(
            {"classId": class_id, "activityId": activity_id},
            lambda: self._client.get_class_activity_performance(class_id, activity_id),
        )

    async def get_realtime_analytics(
        self,
        entity_type: EntityType,
        entity_id: str,
        time_window_days: int = 7,
    ) -> dict[str, Any]:
        """Dashboard analytics over the last time_window_days, cached for 30 seconds."""
        if not entity_id.strip():
            raise ValidationError("entity_id cannot be empty")
        if time_window_days < 1:
            raise ValidationError("time_window_days must be >= 1")

        async def load() -> dict[str, Any]:
            since = datetime.now(timezone.utc) - timedelta(days=time_window_days)
            events = await self._client.get_realtime_events(
                entity_type.value, entity_id, since.isoformat()
            )
            analytics = summarize_realtime(entity_type.value, events, time_window_days)
            analytics["lastUpdated"] = datetime.now(timezone.utc).isoformat()
            return analytics

        return await self._realtime.get_or_compute(
            {
                "entityType": entity_type.value,
                "entityId": entity_id,
                "timeWindow": time_window_days,
            },
            load,
            ttl_override_ms=REALTIME_TTL_MS,
        )

    async def batch_update_performance_records(
        self, updates: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Send updates in batches of 100, then drop every cached performance view.

        Per-record failures reported by the API are collected, not raised.
        """
        for update in updates:
            if not update.get("id"):
                raise ValidationError("every update needs an 'id'")

        updated = 0
        errors: list[str] = []
        try:
            for batch in chunked(updates, BATCH_SIZE):
                result = await self._client.update_performance_records(batch)
                updated += int(result.get("updated", 0))
                errors.extend(result.get("errors", []))
        finally:
            # Earlier batches may have been written even if a later one failed.
            if updates:
                removed = self._registry.invalidate_prefix(PERFORMANCE_PREFIX)
                logger.info(
                    "Performance records updated (%d), invalidated %d cache entries",
                    updated,
                    removed,
                )
        return {"updated": updated, "errors": errors}
