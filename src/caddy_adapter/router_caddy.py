"""Caddy routes — /caddy/* JSON views and mutations over the admin API.

Endpoints:
  GET    /caddy/config                      — Full live config
  GET    /caddy/routes                      — Flattened routes with upstream dials
  GET    /caddy/upstreams                   — Live upstream health from reverse_proxy
  GET    /caddy/metrics                     — Prometheus metrics grouped by subsystem
  GET    /caddy/dashboard                   — Reachability, route and upstream counts
  GET    /caddy/tcp-check                   — Raw TCP reachability of host:port
  GET    /caddy/upstream-check              — HTTP status of an upstream address
  POST   /caddy/routes                      — Append a reverse_proxy route
  DELETE /caddy/routes/{server_name}/{index} — Delete a route by position
  POST   /caddy/reload                      — Re-apply the current config
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .config_tree import extract_routes
from .dashboard import dashboard_summary
from .models import AddRouteRequest, AdminCallResult, UpstreamStatus
from .probe import http_check, tcp_check
from .prom_metrics import classify_metrics, parse_prometheus_text
from .route_mutator import add_route, delete_route_by_index, is_validation_error, reload_config

router = APIRouter(prefix="/caddy", tags=["caddy"])
logger = logging.getLogger(__name__)


def _get_client():
    from .main import get_admin_client
    return get_admin_client()


def _get_metric_groups():
    from .main import get_metric_groups
    return get_metric_groups()


def _mutation_response(result: AdminCallResult, action: str, target: str) -> JSONResponse:
    """Log the mutation outcome and map it onto an HTTP status."""
    if result.ok:
        logger.info("%s %s: SUCCESS", action, target)
        return JSONResponse(status_code=200, content={"ok": True, "error": None})
    logger.warning("%s %s: FAILURE %s", action, target, result.error)
    status_code = 400 if is_validation_error(result.error) else 502
    return JSONResponse(status_code=status_code, content={"ok": False, "error": result.error})


def _upstream_list(data) -> list[UpstreamStatus]:
    upstreams: list[UpstreamStatus] = []
    for item in data if isinstance(data, list) else []:
        if not isinstance(item, dict) or "address" not in item:
            continue
        try:
            upstreams.append(UpstreamStatus.model_validate(item))
        except ValidationError as e:
            logger.debug("Skipping malformed upstream %r: %s", item.get("address"), e)
    return upstreams


@router.get("/config")
async def get_config():
    result = await _get_client().get_full_config()
    return {"config": result.data, "error": result.error}


@router.get("/routes")
async def list_routes():
    result = await _get_client().get_servers()
    routes = extract_routes(result.data, max_depth=settings.max_subroute_depth) if result.ok else []
    return {"routes": [r.model_dump() for r in routes], "error": result.error}


@router.get("/upstreams")
async def list_upstreams():
    result = await _get_client().get_upstreams()
    upstreams = _upstream_list(result.data) if result.ok else []
    return {"upstreams": [u.model_dump() for u in upstreams], "error": result.error}


@router.get("/metrics")
async def metrics():
    result = await _get_client().fetch_metrics_text()
    if not result.ok:
        return {"groups": [], "error": result.error}
    groups = classify_metrics(parse_prometheus_text(result.data), _get_metric_groups())
    return {"groups": [g.model_dump() for g in groups], "error": None}


@router.get("/dashboard")
async def dashboard():
    summary = await dashboard_summary(_get_client(), max_depth=settings.max_subroute_depth)
    return summary.model_dump()


@router.get("/tcp-check")
async def tcp_check_endpoint(host: str, port: int, timeout_ms: int | None = None):
    timeout = timeout_ms if timeout_ms is not None else settings.tcp_check_timeout_ms
    reachable = await tcp_check(host, port, timeout)
    return {"host": host, "port": port, "reachable": reachable}


@router.get("/upstream-check")
async def upstream_check(addr: str, proto: str = "http"):
    result = await http_check(addr, proto, settings.tcp_check_timeout_ms)
    return result.model_dump()


@router.post("/routes")
async def create_route(req: AddRouteRequest):
    result = await add_route(_get_client(), req.match_host, req.match_path, req.upstream)
    return _mutation_response(result, "ROUTE_ADD", req.upstream)


@router.delete("/routes/{server_name}/{index}")
async def remove_route(server_name: str, index: str):
    result = await delete_route_by_index(_get_client(), server_name, index)
    return _mutation_response(result, "ROUTE_DELETE", f"{server_name}/routes/{index}")


@router.post("/reload")
async def reload():
    result = await reload_config(_get_client())
    return _mutation_response(result, "CONFIG_RELOAD", "config")
