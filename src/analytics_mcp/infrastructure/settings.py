from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_API_URL = "http://localhost:8000/api"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from environment variables."""

    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    http_timeout: float = 15.0  # seconds
    cache_max_size: int = 1000
    cache_default_ttl_ms: int = 5 * 60 * 1000
    cache_sweep_interval: float = 60.0  # seconds

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        return cls(
            api_url=env.get("SCHOOL_API_URL", DEFAULT_API_URL).rstrip("/"),
            api_token=env.get("SCHOOL_API_TOKEN") or None,
            http_timeout=_float_env(env, "HTTP_TIMEOUT", 15.0),
            cache_max_size=_int_env(env, "CACHE_MAX_SIZE", 1000),
            cache_default_ttl_ms=_int_env(env, "CACHE_DEFAULT_TTL_MS", 5 * 60 * 1000),
            cache_sweep_interval=_float_env(env, "CACHE_SWEEP_INTERVAL", 60.0),
        )
