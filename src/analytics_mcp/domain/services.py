from __future__ import annotations

import math
from collections.abc import Iterator
from typing import Any

from analytics_mcp.domain.entities import Pagination, PerformanceInsights

PASS_MARK = 60.0  # percent


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """Return pagination info; total_pages is 0 when there are no records."""
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )


def calculate_insights(records: list[dict[str, Any]]) -> PerformanceInsights | None:
    """Average score, completion rate and Bloom's distribution for a page of records.

    Returns None for an empty page.
    """
    if not records:
        return None
    percentages = [float(r.get("percentage") or 0.0) for r in records]
    average = sum(percentages) / len(percentages)
    completed = sum(1 for p in percentages if p >= PASS_MARK)
    return PerformanceInsights(
        average_score=round(average, 2),
        completion_rate=round(completed / len(records) * 100, 2),
        blooms_distribution=blooms_distribution(records),
    )


def blooms_distribution(records: list[dict[str, Any]]) -> dict[str, int]:
    """Count records per demonstrated Bloom's level, skipping records without one."""
    counts: dict[str, int] = {}
    for record in records:
        level = record.get("demonstratedLevel")
        if level:
            counts[level] = counts.get(level, 0) + 1
    return counts


def summarize_realtime(
    entity_type: str,
    events: list[dict[str, Any]],
    time_window_days: int,
    recent_limit: int = 20,
) -> dict[str, Any]:
    """Aggregate graded events from the recent window into a dashboard payload."""
    ordered = sorted(events, key=lambda e: e.get("gradedAt") or "", reverse=True)
    percentages = [float(e.get("percentage") or 0.0) for e in events]
    engagement = [float(e["engagementScore"]) for e in events if e.get("engagementScore") is not None]
    recent = ordered[:recent_limit]
    if entity_type == "student":
        total_students = 1
    else:
        total_students = len({e.get("studentId") for e in events if e.get("studentId")})
    return {
        "totalStudents": total_students,
        "averageScore": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
        "completionRate": (
            round(sum(1 for e in recent if float(e.get("percentage") or 0.0) >= PASS_MARK) / len(recent) * 100, 2)
            if recent
            else 0.0
        ),
        "engagementScore": round(sum(engagement) / len(engagement), 2) if engagement else 0.0,
        "recentActivity": [
            {
                "id": e.get("id"),
                "studentId": e.get("studentId"),
                "activityId": e.get("activityId"),
                "score": e.get("score"),
                "percentage": e.get("percentage"),
                "gradedAt": e.get("gradedAt"),
            }
            for e in recent
        ],
        "bloomsDistribution": blooms_distribution(events),
        "timeWindow": time_window_days,
        "totalRecords": len(events),
    }


def chunked(items: list[Any], size: int) -> Iterator[list[Any]]:
    """Yield consecutive slices of at most size items."""
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]
