"""Tests for SchoolApiClient using respx to mock HTTP calls."""
from __future__ import annotations

import httpx
import pytest
import respx

from analytics_mcp.domain.exceptions import ApiError
from analytics_mcp.infrastructure.school_client import SchoolApiClient

BASE_URL = "https://school.test/api"


def make_client(token: str | None = None) -> SchoolApiClient:
    return SchoolApiClient(BASE_URL + "/", httpx.AsyncClient(), api_token=token)


@respx.mock
async def test_get_performance_records_sends_filters() -> None:
    route = respx.get(f"{BASE_URL}/performance/records").mock(
        return_value=httpx.Response(200, json={"records": [], "total": 0})
    )
    client = make_client()
    result = await client.get_performance_records(
        {"studentIds": ["s1", "s2"], "page": 1, "dateFrom": None}
    )
    assert result == {"records": [], "total": 0}
    request = route.calls.last.request
    assert request.url.params.get_list("studentIds") == ["s1", "s2"]
    assert request.url.params["page"] == "1"
    assert "dateFrom" not in request.url.params
    await client.close()


@respx.mock
async def test_bearer_token_header() -> None:
    route = respx.get(f"{BASE_URL}/admin/students").mock(
        return_value=httpx.Response(200, json={"items": [], "total": 0})
    )
    client = make_client(token="abc")
    await client.list_students({"page": 1})
    assert route.calls.last.request.headers["Authorization"] == "Bearer abc"
    await client.close()


@respx.mock
async def test_student_summary_accepts_bare_list() -> None:
    respx.get(f"{BASE_URL}/performance/students/stu_42/summary").mock(
        return_value=httpx.Response(200, json=[{"subjectId": "sub_math"}])
    )
    client = make_client()
    assert await client.get_student_summary("stu_42") == [{"subjectId": "sub_math"}]
    await client.close()


@respx.mock
async def test_class_activity_accepts_items_wrapper() -> None:
    route = respx.get(f"{BASE_URL}/performance/classes/cls_3/activities").mock(
        return_value=httpx.Response(200, json={"items": [{"activityId": "act_7"}]})
    )
    client = make_client()
    result = await client.get_class_activity_performance("cls_3", "act_7")
    assert result == [{"activityId": "act_7"}]
    assert route.calls.last.request.url.params["activityId"] == "act_7"
    await client.close()


@respx.mock
async def test_update_posts_json_body() -> None:
    route = respx.post(f"{BASE_URL}/performance/records/batch").mock(
        return_value=httpx.Response(200, json={"updated": 1, "errors": []})
    )
    client = make_client()
    result = await client.update_performance_records([{"id": "pa_1", "data": {"score": 9}}])
    assert result["updated"] == 1
    assert b'"updates"' in route.calls.last.request.content
    await client.close()


@respx.mock
async def test_get_campus_fetches_campus_by_id() -> None:
    route = respx.get(f"{BASE_URL}/admin/campuses/cmp_north").mock(
        return_value=httpx.Response(200, json={"id": "cmp_north", "name": "North"})
    )
    client = make_client()
    assert await client.get_campus("cmp_north") == {"id": "cmp_north", "name": "North"}
    assert route.called
    await client.close()


@respx.mock
async def test_404_raises_api_error() -> None:
    respx.get(f"{BASE_URL}/admin/campuses/missing").mock(return_value=httpx.Response(404))
    client = make_client()
    with pytest.raises(ApiError) as exc_info:
        await client.get_campus("missing")
    assert exc_info.value.status_code == 404
    await client.close()


@respx.mock
async def test_500_raises_api_error() -> None:
    respx.get(f"{BASE_URL}/admin/users").mock(return_value=httpx.Response(503))
    client = make_client()
    with pytest.raises(ApiError) as exc_info:
        await client.list_users({})
    assert exc_info.value.status_code == 503
    await client.close()
