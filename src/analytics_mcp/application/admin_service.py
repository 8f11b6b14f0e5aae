from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from analytics_mcp.application.cache_registry import CacheRegistry
from analytics_mcp.domain.exceptions import ValidationError
from analytics_mcp.domain.services import build_pagination
from analytics_mcp.domain.value_objects import CacheNamespace
from analytics_mcp.infrastructure.school_client import SchoolApiClient

logger = logging.getLogger(__name__)

CAMPUS_TTL_MS = 30 * 60 * 1000  # campus records change rarely
MAX_PAGE_SIZE = 200


def _list_params(
    search: str | None,
    campus_id: str | None,
    status: str | None,
    page: int,
    page_size: int,
    **extra: Any,
) -> dict[str, Any]:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    params = {
        "search": search.strip() if search and search.strip() else None,
        "campusId": campus_id,
        "status": status.upper() if status else None,
        "page": page,
        "pageSize": page_size,
    }
    params.update(extra)
    return params


class SystemAdminService:
    """Cached student and user listings for the system admin dashboard."""

    def __init__(self, client: SchoolApiClient, registry: CacheRegistry) -> None:
        self._client = client
        self._students = registry.facade(CacheNamespace.STUDENTS)
        self._users = registry.facade(CacheNamespace.USERS)

    async def list_students(
        self,
        search: str | None = None,
        campus_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        params = _list_params(search, campus_id, status, page, page_size)
        return await self._students.get_or_compute(
            params, lambda: self._load_list(self._client.list_students, params)
        )

    async def refresh_students(self, **filters: Any) -> dict[str, Any]:
        """Drop cached student listings and reload the requested page."""
        self.invalidate_students()
        return await self.list_students(**filters)

    async def list_users(
        self,
        search: str | None = None,
        campus_id: str | None = None,
        status: str | None = None,
        role: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        """List users, each with its primary campus resolved through the campus cache."""
        params = _list_params(search, campus_id, status, page, page_size, role=role)

        async def load() -> dict[str, Any]:
            listing = await self._load_list(self._client.list_users, params)
            campuses = await asyncio.gather(
                *(self.get_primary_campus(u.get("primaryCampusId")) for u in listing["items"])
            )
            listing["items"] = [
                {**user, "primaryCampus": campus}
                for user, campus in zip(listing["items"], campuses)
            ]
            return listing

        return await self._users.get_or_compute(params, load)

    async def get_primary_campus(self, campus_id: str | None) -> dict[str, Any] | None:
        if not campus_id:
            return None
        return await self._users.get_or_compute(
            {"primaryCampus": campus_id},
            lambda: self._client.get_campus(campus_id),
            ttl_override_ms=CAMPUS_TTL_MS,
        )

    def invalidate_students(self) -> int:
        return self._students.invalidate()

    def invalidate_users(self) -> int:
        return self._users.invalidate()

    async def _load_list(
        self,
        fetch: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        raw = await fetch(params)
        items: list[dict[str, Any]] = raw.get("items", [])
        total = int(raw.get("total", len(items)))
        pagination = build_pagination(params["page"], params["pageSize"], total)
        return {
            "items": items,
            "total": total,
            "page": pagination.page,
            "pageSize": pagination.limit,
            "totalPages": pagination.total_pages,
        }
