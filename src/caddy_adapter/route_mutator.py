"""Index-addressed route mutations against the live Caddy config."""

import logging
import re
from typing import Any

from .admin_client import AdminClient
from .models import AdminCallResult

logger = logging.getLogger(__name__)

_INDEX_RE = re.compile(r"^[+-]?[0-9]+$")

NO_SERVERS_ERROR = "No HTTP servers configured"
INVALID_INDEX_ERROR = "Invalid route index"


def is_validation_error(error: str | None) -> bool:
    """True for faults raised locally, before any write reached Caddy."""
    return bool(error) and (error == NO_SERVERS_ERROR or error.startswith(f"{INVALID_INDEX_ERROR}:"))


def build_route(match_host: str | None, match_path: str | None, upstream_dial: str) -> dict[str, Any]:
    """Build a single reverse_proxy route, matching only on the supplied fields."""
    route: dict[str, Any] = {
        "handle": [{"handler": "reverse_proxy", "upstreams": [{"dial": upstream_dial}]}],
    }
    match: dict[str, list[str]] = {}
    if match_host:
        match["host"] = [match_host]
    if match_path:
        match["path"] = [match_path]
    if match:
        route["match"] = [match]
    return route


def parse_route_index(route_index: Any, length: int) -> int | None:
    """Return the index as an int within [0, length), or None."""
    if isinstance(route_index, bool):
        return None
    text = str(route_index).strip()
    if not _INDEX_RE.match(text):
        return None
    idx = int(text)
    if idx < 0 or idx >= length:
        return None
    return idx


async def add_route(
    client: AdminClient,
    match_host: str | None,
    match_path: str | None,
    upstream_dial: str,
) -> AdminCallResult:
    """Append a reverse_proxy route to the first configured HTTP server."""
    servers = await client.get_servers()
    if not servers.ok:
        return servers

    server_names = list(servers.data) if isinstance(servers.data, dict) else []
    if not server_names:
        return AdminCallResult.failure(NO_SERVERS_ERROR)

    # TODO: accept an explicit target server once callers can pick one
    server_name = server_names[0]
    route = build_route(match_host, match_path, upstream_dial)
    logger.info("Appending route to %s -> %s", server_name, upstream_dial)
    return await client.append_route(server_name, route)


async def delete_route_by_index(client: AdminClient, server_name: str, route_index: Any) -> AdminCallResult:
    """Remove one route by position via read-modify-write of the route list.

    The read and the write are separate requests with no precondition, so a
    change made by someone else in between is overwritten.
    """
    current = await client.get_server_routes(server_name)
    if not current.ok:
        return current

    routes = list(current.data) if isinstance(current.data, list) else []
    idx = parse_route_index(route_index, len(routes))
    if idx is None:
        return AdminCallResult.failure(f"{INVALID_INDEX_ERROR}: {route_index}")

    del routes[idx]
    logger.info("Deleting route %s/%d (%d remaining)", server_name, idx, len(routes))
    return await client.replace_routes(server_name, routes)


async def reload_config(client: AdminClient) -> AdminCallResult:
    """Re-apply the current config through /load."""
    current = await client.get_full_config()
    if not current.ok:
        return current
    return await client.load_config(current.data)
