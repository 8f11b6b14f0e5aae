from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from analytics_mcp.domain.exceptions import KeySerializationError
from analytics_mcp.domain.value_objects import JSONValue


def canonical_json(value: Any) -> str:
    """Encode value as compact JSON with object keys sorted at every depth.

    Raises KeySerializationError for cycles, NaN/Infinity and non-JSON types.
    """
    try:
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            check_circular=True,
        )
    except (TypeError, ValueError) as exc:
        raise KeySerializationError(str(exc)) from exc


def build_key(prefix: str, params: Mapping[str, JSONValue]) -> str:
    """Build a stable cache key: ``prefix:a=1&b="x"``.

    None-valued params are dropped, names are sorted, values are canonical JSON,
    so the same pairs in any insertion order map to the same key.
    """
    parts: list[str] = []
    for name in sorted(_checked_names(params)):
        value = params[name]
        if value is None:
            continue
        try:
            encoded = canonical_json(value)
        except KeySerializationError as exc:
            raise KeySerializationError(
                f"Cannot build cache key for parameter {name!r}: {exc}"
            ) from exc
        parts.append(f"{name}={encoded}")
    return f"{prefix}:" + "&".join(parts)


def _checked_names(params: Mapping[str, JSONValue]) -> list[str]:
    names = list(params.keys())
    for name in names:
        if not isinstance(name, str):
            raise KeySerializationError(f"Cache parameter names must be strings, got {name!r}")
    return names
