"""
Shared fixtures: an in-memory stand-in for the Caddy admin API served through
httpx.MockTransport, so admin client calls never leave the process.
"""

import copy
import json
import os
import sys

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from caddy_adapter.admin_client import AdminClient  # noqa: E402

SERVERS_PREFIX = "/config/apps/http/servers/"

METRICS_TEXT = """\
# HELP caddy_http_requests_total Counter of HTTP(S) requests made.
# TYPE caddy_http_requests_total counter
caddy_http_requests_total{handler="reverse_proxy",server="srv0"} 42
caddy_http_requests_total{handler="file_server",server="srv0"} 7
# HELP caddy_http_request_duration_seconds Histogram of round-trip request durations.
# TYPE caddy_http_request_duration_seconds histogram
caddy_http_request_duration_seconds_bucket{le="0.005"} 3
caddy_http_request_duration_seconds_bucket{le="+Inf"} 49
caddy_http_request_duration_seconds_sum 1.25e-01
caddy_http_request_duration_seconds_count 49
# HELP caddy_reverse_proxy_upstreams_healthy Health status of reverse proxy upstreams.
# TYPE caddy_reverse_proxy_upstreams_healthy gauge
caddy_reverse_proxy_upstreams_healthy{upstream="10.0.0.1:8080"} 1
# HELP caddy_admin_http_requests_total Counter of requests made to the Admin API's HTTP endpoints.
# TYPE caddy_admin_http_requests_total counter
caddy_admin_http_requests_total{code="200",handler="load",method="POST",path="/load"} 2
# HELP go_goroutines Number of goroutines that currently exist.
# TYPE go_goroutines gauge
go_goroutines 23
# HELP process_open_fds Number of open file descriptors.
# TYPE process_open_fds gauge
process_open_fds 12
# HELP promhttp_metric_handler_requests_total Total number of scrapes by HTTP status code.
# TYPE promhttp_metric_handler_requests_total counter
promhttp_metric_handler_requests_total{code="200"} 5
"""


def sample_config() -> dict:
    return {
        "admin": {"listen": "localhost:2019"},
        "apps": {
            "http": {
                "servers": {
                    "srv0": {
                        "listen": [":443"],
                        "automatic_https": {"disable": False},
                        "routes": [
                            {
                                "match": [{"host": ["app.example.com"]}],
                                "handle": [
                                    {
                                        "handler": "subroute",
                                        "routes": [
                                            {
                                                "handle": [
                                                    {
                                                        "handler": "reverse_proxy",
                                                        "upstreams": [{"dial": "10.0.0.1:8080"}],
                                                    }
                                                ]
                                            }
                                        ],
                                    }
                                ],
                                "terminal": True,
                            },
                            {
                                "match": [{"host": ["static.example.com"]}],
                                "handle": [{"handler": "file_server", "root": "/srv/www"}],
                            },
                            {
                                "match": [{"path": ["/api/*"]}],
                                "handle": [
                                    {
                                        "handler": "reverse_proxy",
                                        "upstreams": [{"dial": "10.0.0.2:9000"}, {"dial": "10.0.0.3:9000"}],
                                    }
                                ],
                            },
                        ],
                    },
                    "srv1": {
                        "listen": [":8080"],
                        "routes": [
                            {"handle": [{"handler": "reverse_proxy", "upstreams": [{"dial": "localhost:3000"}]}]}
                        ],
                    },
                }
            }
        },
    }


class FakeCaddy:
    """Minimal admin API: config reads, route append/replace, /load, upstreams, metrics."""

    def __init__(self, config: dict | None = None) -> None:
        self.config = config if config is not None else sample_config()
        self.upstreams = [
            {"address": "10.0.0.1:8080", "num_requests": 0, "fails": 0},
            {"address": "10.0.0.2:9000", "num_requests": 3, "fails": 1, "healthy": False},
        ]
        self.metrics_text = METRICS_TEXT
        self.requests: list[tuple[str, str]] = []
        self.canned: dict[str, tuple[int, str]] = {}
        self.bodies: list[bytes] = []

    @property
    def servers(self) -> dict:
        return self.config.setdefault("apps", {}).setdefault("http", {}).setdefault("servers", {})

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [(m, p) for m, p in self.requests if m != "GET"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        if method != "GET":
            self.bodies.append(request.content)
        if path in self.canned:
            status, text = self.canned[path]
            return httpx.Response(status, text=text)

        body = json.loads(request.content) if request.content else None

        if method == "GET" and path == "/config/":
            return httpx.Response(200, json=self.config)
        if method == "GET" and path == "/config/apps/http/servers":
            return httpx.Response(200, json=self.servers)
        if method == "GET" and path == "/reverse_proxy/upstreams":
            return httpx.Response(200, json=self.upstreams)
        if method == "GET" and path == "/metrics":
            return httpx.Response(200, text=self.metrics_text)
        if method == "POST" and path == "/load":
            self.config = copy.deepcopy(body)
            return httpx.Response(200)

        if path.startswith(SERVERS_PREFIX):
            parts = path[len(SERVERS_PREFIX):].split("/")
            name = parts[0]
            server = self.servers.get(name)
            if server is None:
                return httpx.Response(404, text=f'{{"error":"unknown object key \'{name}\'"}}')
            if parts[1:] == ["routes"] and method == "GET":
                return httpx.Response(200, json=server.get("routes", []))
            if parts[1:] == ["routes"] and method == "PUT":
                server["routes"] = body
                return httpx.Response(200)
            if parts[1:] == ["routes", "..."] and method == "POST":
                server.setdefault("routes", []).extend(body)
                return httpx.Response(200)

        return httpx.Response(404, text="not found")


@pytest.fixture
def fake_caddy():
    return FakeCaddy()


@pytest.fixture
def make_client(fake_caddy):
    """Build an unstarted AdminClient wired to the fake admin API."""

    def _make(base_url: str = "http://caddy.test:2019") -> AdminClient:
        return AdminClient(base_url, transport=httpx.MockTransport(fake_caddy.handler))

    return _make
