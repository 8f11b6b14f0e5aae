from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from mcp import types
from mcp.server.fastmcp import FastMCP

from analytics_mcp.application.admin_service import SystemAdminService
from analytics_mcp.application.cache_registry import CacheRegistry
from analytics_mcp.application.performance_service import PerformanceQueryService
from analytics_mcp.domain.entities import PerformanceQuery
from analytics_mcp.domain.exceptions import ApiError, KeySerializationError, ValidationError
from analytics_mcp.domain.value_objects import CacheNamespace, EntityType

logger = logging.getLogger(__name__)

_RESULT_URI = "mcp://analytics-mcp/result"

ALL_NAMESPACES = "all"


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _result_json(result: Any) -> list[types.EmbeddedResource]:
    return _as_resource(json.dumps(result, default=str, ensure_ascii=False))


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(exc, ApiError):
        if exc.status_code == 400:
            return _as_resource(_error_json("Invalid request. Please check your inputs."))
        if exc.status_code in (401, 403):
            return _as_resource(_error_json("Not authorized to access the school API."))
        if exc.status_code == 404:
            return _as_resource(_error_json("Resource not found."))
        if exc.status_code >= 500:
            return _as_resource(
                _error_json(f"Upstream API error ({exc.status_code}). Please try again later.")
            )
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, httpx.TimeoutException):
        return _as_resource(_error_json("Request timed out. Please try again."))
    if isinstance(exc, (ValidationError, KeySerializationError, ValueError)):
        return _as_resource(_error_json(str(exc)))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def _parse_entity_type(entity_type: str) -> EntityType:
    try:
        return EntityType(entity_type.strip().lower())
    except ValueError:
        raise ValueError(f"Invalid entity type: {entity_type}")


def _parse_namespace(namespace: str) -> str:
    value = namespace.strip()
    if value == ALL_NAMESPACES:
        return value
    valid = {n.value for n in CacheNamespace}
    if value not in valid:
        raise ValueError(
            f"Unknown cache namespace: {namespace}. Expected one of: "
            + ", ".join(sorted(valid | {ALL_NAMESPACES}))
        )
    return value


def register_tools(
    mcp: FastMCP,
    performance_svc: PerformanceQueryService,
    admin_svc: SystemAdminService,
    registry: CacheRegistry,
) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def get_performance_records(
        student_ids: list[str] | None = None,
        class_ids: list[str] | None = None,
        activity_ids: list[str] | None = None,
        subject_ids: list[str] | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        page: int = 1,
        limit: int = 50,
        sort_direction: str = "desc",
    ) -> list[types.EmbeddedResource]:
        """Get graded performance records with pagination and summary insights.

        Args:
            student_ids: Restrict to these students.
            class_ids: Restrict to these classes.
            activity_ids: Restrict to these activities.
            subject_ids: Restrict to these subjects.
            date_from: Earliest graded date (YYYY-MM-DD), inclusive.
            date_to: Latest graded date (YYYY-MM-DD), inclusive.
            page: Page number starting at 1.
            limit: Records per page (default 50).
            sort_direction: "asc" or "desc" by graded date.
        """
        try:
            query = PerformanceQuery(
                student_ids=student_ids or [],
                class_ids=class_ids or [],
                activity_ids=activity_ids or [],
                subject_ids=subject_ids or [],
                date_from=date_from,
                date_to=date_to,
                page=page,
                limit=limit,
                sort_direction=sort_direction.lower(),
            )
            return _result_json(await performance_svc.get_performance_records(query))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_student_summary(
        student_id: str,
        subject_id: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Get a student's performance summary per subject.

        Args:
            student_id: Student profile ID.
            subject_id: Optional subject to restrict the summary to.
        """
        try:
            result = await performance_svc.get_student_performance_summary(
                student_id.strip(), subject_id
            )
            return _result_json(result)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_class_activity_performance(
        class_id: str,
        activity_id: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Get per-activity performance aggregates for a class.

        Args:
            class_id: Class ID.
            activity_id: Optional activity to restrict the result to.
        """
        try:
            result = await performance_svc.get_class_activity_performance(
                class_id.strip(), activity_id
            )
            return _result_json(result)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_realtime_analytics(
        entity_type: str,
        entity_id: str,
        time_window_days: int = 7,
    ) -> list[types.EmbeddedResource]:
        """Get near-real-time analytics for a student, class or subject.

        Args:
            entity_type: One of "student", "class", "subject".
            entity_id: ID of the entity.
            time_window_days: How many days back to aggregate (default 7).
        """
        try:
            result = await performance_svc.get_realtime_analytics(
                _parse_entity_type(entity_type), entity_id.strip(), time_window_days
            )
            return _result_json(result)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def update_performance_records(
        updates: list[dict[str, Any]],
    ) -> list[types.EmbeddedResource]:
        """Apply score corrections to performance records and refresh cached analytics.

        Args:
            updates: Items of the form {"id": "...", "data": {"score": 8, ...}}.
        """
        try:
            if not updates:
                return _as_resource(_error_json("updates cannot be empty"))
            return _result_json(await performance_svc.batch_update_performance_records(updates))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_students(
        search: str | None = None,
        campus_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
        refresh: bool = False,
    ) -> list[types.EmbeddedResource]:
        """List students for the system admin dashboard.

        Args:
            search: Name, email or enrollment number substring.
            campus_id: Restrict to one campus.
            status: Enrollment status, e.g. "ACTIVE".
            page: Page number starting at 1.
            page_size: Students per page (default 20).
            refresh: Bypass and rebuild the cached listings.
        """
        try:
            filters: dict[str, Any] = {
                "search": search,
                "campus_id": campus_id,
                "status": status,
                "page": page,
                "page_size": page_size,
            }
            if refresh:
                result = await admin_svc.refresh_students(**filters)
            else:
                result = await admin_svc.list_students(**filters)
            return _result_json(result)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_users(
        search: str | None = None,
        campus_id: str | None = None,
        status: str | None = None,
        role: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[types.EmbeddedResource]:
        """List users with their primary campus.

        Args:
            search: Name, email or username substring.
            campus_id: Restrict to one campus.
            status: Account status, e.g. "ACTIVE".
            role: User type, e.g. "TEACHER".
            page: Page number starting at 1.
            page_size: Users per page (default 20).
        """
        try:
            result = await admin_svc.list_users(
                search=search,
                campus_id=campus_id,
                status=status,
                role=role,
                page=page,
                page_size=page_size,
            )
            return _result_json(result)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def invalidate_cache(namespace: str) -> list[types.EmbeddedResource]:
        """Drop cached results for one data domain, or "all" for everything.

        Args:
            namespace: Cache namespace such as "system:students" or "performance_records".
        """
        try:
            name = _parse_namespace(namespace)
            if name == ALL_NAMESPACES:
                removed = registry.invalidate_all()
            else:
                removed = registry.invalidate(name)
            return _result_json({"namespace": name, "removed": removed})
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def cache_stats() -> list[types.EmbeddedResource]:
        """Report cache size, hit rate and entries per namespace."""
        try:
            return _result_json(registry.stats())
        except Exception as exc:
            return _handle_exception(exc)
