import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .models import AdminCallResult

logger = logging.getLogger(__name__)

_NO_BODY = object()

SERVERS_PATH = "/config/apps/http/servers"


def server_routes_path(server_name: str) -> str:
    return f"{SERVERS_PATH}/{quote(server_name, safe='')}/routes"


class AdminClient:
    """Async client for the Caddy admin API.

    Every call is attempted exactly once. Transport, HTTP status and JSON
    decoding failures all come back as an AdminCallResult with `error` set;
    only lifecycle misuse (calling before start()) raises.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        metrics_path: str = "/metrics",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._metrics_path = metrics_path
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
        )

    async def stop(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AdminClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _require_client(self) -> httpx.AsyncClient:
        """Return initialized client or raise a clear runtime error."""
        if self._client is None:
            raise RuntimeError("Admin client is not started")
        return self._client

    async def _fetch_text(self, method: str, path: str, body: Any = _NO_BODY) -> AdminCallResult:
        """Issue one request. On success `data` is the raw response text."""
        kwargs: dict[str, Any] = {"headers": {"Content-Type": "application/json"}}
        if body is not _NO_BODY:
            kwargs["content"] = json.dumps(body)
        try:
            resp = await self._require_client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Admin API %s %s failed: %s", method, path, e)
            return AdminCallResult.failure(str(e) or e.__class__.__name__)

        if not resp.is_success:
            logger.warning("Admin API %s %s returned %d", method, path, resp.status_code)
            return AdminCallResult.failure(f"Caddy responded {resp.status_code}: {resp.text}")
        return AdminCallResult.success(resp.text)

    async def call(self, method: str, path: str, body: Any = _NO_BODY) -> AdminCallResult:
        """Send a JSON request to the admin API and decode the JSON reply."""
        result = await self._fetch_text(method, path, body)
        if not result.ok:
            return result
        if not result.data:
            return AdminCallResult.success(None)
        try:
            return AdminCallResult.success(json.loads(result.data))
        except ValueError as e:
            logger.warning("Admin API %s %s returned invalid JSON: %s", method, path, e)
            return AdminCallResult.failure(f"Invalid JSON from Caddy: {e}")

    async def fetch_metrics_text(self) -> AdminCallResult:
        """Fetch the raw Prometheus exposition text. `data` is a str on success."""
        return await self._fetch_text("GET", self._metrics_path)

    # --- Named admin endpoints ---

    async def get_full_config(self) -> AdminCallResult:
        return await self.call("GET", "/config/")

    async def get_servers(self) -> AdminCallResult:
        return await self.call("GET", SERVERS_PATH)

    async def get_server_routes(self, server_name: str) -> AdminCallResult:
        return await self.call("GET", server_routes_path(server_name))

    async def get_upstreams(self) -> AdminCallResult:
        return await self.call("GET", "/reverse_proxy/upstreams")

    async def append_route(self, server_name: str, route: dict) -> AdminCallResult:
        # "..." expands the posted array into items appended to the sequence
        return await self.call("POST", f"{server_routes_path(server_name)}/...", [route])

    async def replace_routes(self, server_name: str, routes: list) -> AdminCallResult:
        return await self.call("PUT", server_routes_path(server_name), routes)

    async def load_config(self, config: Any) -> AdminCallResult:
        return await self.call("POST", "/load", config)

    async def health_check(self) -> dict:
        """Check admin API reachability. Returns status dict."""
        result = await self.get_full_config()
        if result.ok:
            return {"status": "healthy"}
        return {"status": "unreachable", "error": result.error}
