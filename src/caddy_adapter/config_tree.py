"""Flatten Caddy's nested HTTP server config into route and upstream views.

Handlers inside a route's `handle` list come in three shapes that matter here:

  upstream  — carries `upstreams: [{"dial": "host:port"}, ...]` (reverse_proxy)
  subroute  — carries a nested `routes` list, each with its own `handle`
  opaque    — anything else (file_server, headers, static_response, ...)

Subroutes can nest to any depth. The walk is depth-first and does not detect
cycles; a self-referential document would not terminate unless `max_depth`
is set.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import FlatRoute

logger = logging.getLogger(__name__)

HANDLER_UPSTREAM = "upstream"
HANDLER_SUBROUTE = "subroute"
HANDLER_OPAQUE = "opaque"


def classify_handler(handler: Any) -> str:
    if not isinstance(handler, Mapping):
        return HANDLER_OPAQUE
    if handler.get("upstreams"):
        return HANDLER_UPSTREAM
    if handler.get("routes"):
        return HANDLER_SUBROUTE
    return HANDLER_OPAQUE


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def extract_upstreams(
    handlers: Any,
    *,
    max_depth: int | None = None,
    _depth: int = 0,
) -> list[str]:
    """Collect dial addresses from a handle list, descending into subroutes.

    Order follows handler order, then nested route order. A handler carrying
    both `upstreams` and `routes` contributes its own dials first.
    """
    dials: list[str] = []
    for handler in _as_list(handlers):
        if classify_handler(handler) == HANDLER_OPAQUE:
            continue
        for upstream in _as_list(handler.get("upstreams")):
            if isinstance(upstream, Mapping) and upstream.get("dial"):
                dials.append(str(upstream["dial"]))

        nested = _as_list(handler.get("routes"))
        if not nested:
            continue
        if max_depth is not None and _depth >= max_depth:
            logger.warning("Subroute nesting exceeds depth %d; not descending further", max_depth)
            continue
        for route in nested:
            if isinstance(route, Mapping):
                dials.extend(
                    extract_upstreams(route.get("handle"), max_depth=max_depth, _depth=_depth + 1)
                )
    return dials


def extract_routes(server_set: Any, *, max_depth: int | None = None) -> list[FlatRoute]:
    """Flatten every server's routes into FlatRoute entries.

    Servers keep the mapping's iteration order; routes within a server keep
    their position, which is also their `index` for later index-addressed
    mutations. Missing or malformed input yields an empty list.
    """
    if not isinstance(server_set, Mapping):
        return []
    flat: list[FlatRoute] = []
    for server_name, server in server_set.items():
        if not isinstance(server, Mapping):
            continue
        for idx, route in enumerate(_as_list(server.get("routes"))):
            if not isinstance(route, Mapping):
                route = {}
            flat.append(
                FlatRoute(
                    server_name=str(server_name),
                    route=dict(route),
                    index=idx,
                    upstreams=extract_upstreams(route.get("handle"), max_depth=max_depth),
                )
            )
    return flat
