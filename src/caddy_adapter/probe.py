"""Reachability probes for upstream addresses, independent of the admin API."""

import asyncio
import logging

import httpx

from .models import UpstreamCheckResult

logger = logging.getLogger(__name__)

ALLOWED_PROTOS = ("http", "https")


async def tcp_check(host: str, port: int | str, timeout_ms: int = 3000) -> bool:
    """Return True if a TCP handshake with host:port completes within timeout_ms.

    The connection is closed immediately; nothing is sent.
    """
    try:
        port_num = int(port)
    except (TypeError, ValueError):
        return False
    if not 0 < port_num < 65536:
        return False

    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port_num), timeout=max(timeout_ms, 0) / 1000
        )
    except (OSError, ValueError, asyncio.TimeoutError) as e:
        logger.debug("TCP check %s:%s failed: %s", host, port_num, e)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug("TCP check %s:%s close failed: %s", host, port_num, e)
    return True


async def http_check(
    address: str,
    proto: str = "http",
    timeout_ms: int = 3000,
    *,
    verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpstreamCheckResult:
    """GET the upstream root and report the status code, or the failure."""
    if proto not in ALLOWED_PROTOS:
        return UpstreamCheckResult(error=f"Unsupported protocol: {proto}")
    if not address or "/" in address:
        return UpstreamCheckResult(error=f"Invalid upstream address: {address}")

    url = f"{proto}://{address}/"
    try:
        async with httpx.AsyncClient(
            timeout=timeout_ms / 1000,
            follow_redirects=False,
            verify=verify,
            transport=transport,
        ) as session:
            resp = await session.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("HTTP check %s failed: %s", url, e)
        return UpstreamCheckResult(error=str(e) or e.__class__.__name__)
    return UpstreamCheckResult(status=resp.status_code)
