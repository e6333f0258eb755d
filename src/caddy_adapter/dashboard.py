"""Aggregate status for the landing page: reachability, route and upstream counts."""

import asyncio

from .admin_client import AdminClient
from .config_tree import extract_routes
from .models import DashboardSummary, UpstreamStats


def upstream_stats(upstreams) -> UpstreamStats:
    """Count upstreams; only an explicit `healthy: false` counts as down."""
    items = upstreams if isinstance(upstreams, list) else []
    down = sum(1 for u in items if isinstance(u, dict) and u.get("healthy") is False)
    return UpstreamStats(total=len(items), up=len(items) - down, down=down)


async def dashboard_summary(client: AdminClient, *, max_depth: int | None = None) -> DashboardSummary:
    full_config, servers, upstreams = await asyncio.gather(
        client.get_full_config(),
        client.get_servers(),
        client.get_upstreams(),
    )
    routes = extract_routes(servers.data, max_depth=max_depth) if servers.ok else []
    return DashboardSummary(
        reachable=full_config.ok,
        route_count=len(routes),
        upstream_stats=upstream_stats(upstreams.data if upstreams.ok else None),
        error=full_config.error,
    )
