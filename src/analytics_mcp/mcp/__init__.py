from __future__ import annotations

from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP

from analytics_mcp.application.admin_service import SystemAdminService
from analytics_mcp.application.cache_registry import CacheRegistry
from analytics_mcp.application.performance_service import PerformanceQueryService
from analytics_mcp.infrastructure.cache import CacheStore
from analytics_mcp.infrastructure.school_client import SchoolApiClient
from analytics_mcp.infrastructure.settings import Settings
from analytics_mcp.infrastructure.sweeper import CacheSweeper
from analytics_mcp.mcp.tools import register_tools


@dataclass
class AppServices:
    """Process-wide objects built once at startup."""

    registry: CacheRegistry
    sweeper: CacheSweeper
    client: SchoolApiClient
    performance: PerformanceQueryService
    admin: SystemAdminService


def build_services(settings: Settings) -> AppServices:
    """Wire the cache, the upstream client and the query services."""
    store = CacheStore(
        max_size=settings.cache_max_size,
        default_ttl_ms=settings.cache_default_ttl_ms,
    )
    registry = CacheRegistry(store)
    sweeper = CacheSweeper(interval_s=settings.cache_sweep_interval)
    sweeper.register(store)

    http_client = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
    client = SchoolApiClient(settings.api_url, http_client, api_token=settings.api_token)
    return AppServices(
        registry=registry,
        sweeper=sweeper,
        client=client,
        performance=PerformanceQueryService(client, registry),
        admin=SystemAdminService(client, registry),
    )


def create_mcp_app(settings: Settings | None = None) -> FastMCP:
    """Create and configure the FastMCP application with all services wired."""
    services = build_services(settings or Settings.from_env())
    services.sweeper.start()

    mcp = FastMCP("School Analytics MCP", stateless_http=True)
    register_tools(mcp, services.performance, services.admin, services.registry)
    return mcp
