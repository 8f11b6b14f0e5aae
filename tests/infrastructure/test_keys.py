"""Tests for cache key generation."""
from __future__ import annotations

import math

import pytest

from analytics_mcp.domain.exceptions import KeySerializationError
from analytics_mcp.infrastructure.keys import build_key, canonical_json


def test_key_independent_of_param_order() -> None:
    assert build_key("ns", {"a": 1, "b": 2}) == build_key("ns", {"b": 2, "a": 1})


def test_key_format() -> None:
    assert build_key("ns", {"b": "x", "a": 1}) == 'ns:a=1&b="x"'


def test_empty_params() -> None:
    assert build_key("system:students", {}) == "system:students:"


def test_none_values_are_dropped() -> None:
    assert build_key("ns", {"studentId": "42", "subjectId": None}) == build_key(
        "ns", {"studentId": "42"}
    )


def test_nested_objects_are_order_independent() -> None:
    first = {"filters": {"dateRange": {"start": "2026-01-01", "end": "2026-06-30"}, "ids": [1, 2]}}
    second = {"filters": {"ids": [1, 2], "dateRange": {"end": "2026-06-30", "start": "2026-01-01"}}}
    assert build_key("ns", first) == build_key("ns", second)


def test_list_order_is_significant() -> None:
    assert build_key("ns", {"ids": [1, 2]}) != build_key("ns", {"ids": [2, 1]})


def test_prefix_separates_namespaces() -> None:
    assert build_key("system:students", {"page": 1}) != build_key("system:users", {"page": 1})


def test_value_types_are_distinguished() -> None:
    assert build_key("ns", {"id": 42}) != build_key("ns", {"id": "42"})
    assert build_key("ns", {"flag": True}) != build_key("ns", {"flag": "true"})


def test_unicode_is_kept_readable() -> None:
    assert build_key("ns", {"search": "Zoë"}) == 'ns:search="Zoë"'


def test_cyclic_value_fails_fast() -> None:
    cyclic: dict = {}  # type: ignore[type-arg]
    cyclic["self"] = cyclic
    with pytest.raises(KeySerializationError, match="'filters'"):
        build_key("ns", {"filters": cyclic})


def test_nan_is_rejected() -> None:
    with pytest.raises(KeySerializationError):
        build_key("ns", {"minPercentage": math.nan})


def test_non_json_value_is_rejected() -> None:
    with pytest.raises(KeySerializationError, match="'ids'"):
        build_key("ns", {"ids": {1, 2}})


def test_non_string_param_name_is_rejected() -> None:
    with pytest.raises(KeySerializationError, match="names must be strings"):
        build_key("ns", {1: "a"})  # type: ignore[dict-item]


def test_canonical_json_sorts_nested_keys() -> None:
    assert canonical_json({"b": {"d": 1, "c": 2}, "a": []}) == '{"a":[],"b":{"c":2,"d":1}}'
