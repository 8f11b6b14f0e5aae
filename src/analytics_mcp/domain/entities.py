from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CacheEntry:
    """A single cached value with its time-to-live."""

    key: str  # namespace prefix + canonical params
    value: Any
    created_at_ms: float  # monotonic clock, milliseconds
    ttl_ms: int
    tag: str | None = None  # namespace used for bulk invalidation

    @property
    def expires_at_ms(self) -> float:
        return self.created_at_ms + self.ttl_ms

    def is_live(self, now_ms: float) -> bool:
        """An entry is servable strictly before its expiry instant."""
        return now_ms < self.expires_at_ms


@dataclass
class CacheStats:
    """Counters describing cache effectiveness since the store was created."""

    size: int
    max_size: int
    hits: int = 0
    misses: int = 0
    evictions: int = 0  # size-bound removals
    expirations: int = 0  # lazy or swept TTL removals
    tags: dict[str, int] = field(default_factory=dict)  # tag -> live entry count

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


@dataclass
class PerformanceInsights:
    """Aggregates computed over one page of performance records."""

    average_score: float  # mean percentage
    completion_rate: float  # percent of records at or above the pass mark
    blooms_distribution: dict[str, int]  # demonstrated level -> record count


@dataclass
class PerformanceQuery:
    """Filters for a performance records lookup."""

    student_ids: list[str] = field(default_factory=list)
    class_ids: list[str] = field(default_factory=list)
    activity_ids: list[str] = field(default_factory=list)
    subject_ids: list[str] = field(default_factory=list)
    blooms_levels: list[str] = field(default_factory=list)
    date_from: str | None = None  # ISO date, inclusive
    date_to: str | None = None
    min_percentage: float | None = None
    page: int = 1
    limit: int = 50
    sort_field: str = "gradedAt"
    sort_direction: str = "desc"

    def to_params(self) -> dict[str, Any]:
        """Flat camelCase params shared by the cache key and the API query.

        Id lists are sorted so that the same selection in another order hits
        the same cache entry; empty lists are omitted.
        """
        return {
            "studentIds": sorted(self.student_ids) or None,
            "classIds": sorted(self.class_ids) or None,
            "activityIds": sorted(self.activity_ids) or None,
            "subjectIds": sorted(self.subject_ids) or None,
            "bloomsLevels": sorted(self.blooms_levels) or None,
            "dateFrom": self.date_from,
            "dateTo": self.date_to,
            "minPercentage": self.min_percentage,
            "page": self.page,
            "limit": self.limit,
            "sortField": self.sort_field,
            "sortDirection": self.sort_direction,
        }
