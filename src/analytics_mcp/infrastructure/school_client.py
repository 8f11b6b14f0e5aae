from __future__ import annotations

from typing import Any

import httpx

from analytics_mcp.domain.exceptions import ApiError


class SchoolApiClient:
    """HTTP client for the school management API.

    Holds no cache of its own; callers wrap its methods in cache facades.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        api_token: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._api_token = api_token

    async def get_performance_records(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET /performance/records: returns {"records": [...], "total": n}."""
        return await self._get("/performance/records", params)

    async def get_student_summary(
        self, student_id: str, subject_id: str | None = None
    ) -> list[dict[str, Any]]:
        """GET /performance/students/{id}/summary: one entry per subject."""
        result = await self._get(
            f"/performance/students/{student_id}/summary", {"subjectId": subject_id}
        )
        return _items(result)

    async def get_class_activity_performance(
        self, class_id: str, activity_id: str | None = None
    ) -> list[dict[str, Any]]:
        """GET /performance/classes/{id}/activities: one entry per activity."""
        result = await self._get(
            f"/performance/classes/{class_id}/activities", {"activityId": activity_id}
        )
        return _items(result)

    async def get_realtime_events(
        self, entity_type: str, entity_id: str, since: str
    ) -> list[dict[str, Any]]:
        """GET /performance/realtime: graded events since an ISO timestamp."""
        result = await self._get(
            "/performance/realtime",
            {"entityType": entity_type, "entityId": entity_id, "since": since},
        )
        return _items(result)

    async def update_performance_records(
        self, updates: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """POST /performance/records/batch: returns {"updated": n, "errors": [...]}."""
        return await self._post("/performance/records/batch", {"updates": updates})

    async def list_students(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET /admin/students: returns {"items": [...], "total": n}."""
        return await self._get("/admin/students", params)

    async def list_users(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET /admin/users: returns {"items": [...], "total": n}."""
        return await self._get("/admin/users", params)

    async def get_campus(self, campus_id: str) -> dict[str, Any]:
        """GET /admin/campuses/{id}."""
        return await self._get(f"/admin/campuses/{campus_id}", {})

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        """Internal GET helper. Drops None params, raises ApiError on non-2xx."""
        query = {k: _query_value(v) for k, v in params.items() if v is not None}
        response = await self._http.get(
            self._base_url + path, params=query, headers=self._headers()
        )
        self._raise_for_status(response)
        return response.json()

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        response = await self._http.post(
            self._base_url + path, json=body, headers=self._headers()
        )
        self._raise_for_status(response)
        return response.json()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise ApiError for non-2xx responses."""
        if response.status_code == 404:
            raise ApiError(404, f"Resource not found (404): {response.url}")
        if response.status_code >= 400:
            raise ApiError(response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


def _query_value(value: Any) -> Any:
    # Lists become repeated query params; booleans use JSON spelling.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return [_query_value(v) for v in value]
    return value


def _items(result: Any) -> list[dict[str, Any]]:
    # The API returns either a bare list or {"items": [...]}
    if isinstance(result, list):
        return result
    items: list[dict[str, Any]] = result.get("items", [])
    return items
