from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator


# --- Admin API call results ---


@dataclass(frozen=True)
class AdminCallResult:
    """Outcome of one admin API call. `error is None` means success."""

    data: Any = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error is not None and self.data is not None:
            raise ValueError("AdminCallResult with an error must not carry data")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "AdminCallResult":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: str) -> "AdminCallResult":
        return cls(data=None, error=error)


# --- Config views ---


class FlatRoute(BaseModel):
    server_name: str
    route: dict[str, Any]
    index: int
    upstreams: list[str] = Field(default_factory=list)


class UpstreamStatus(BaseModel):
    address: str
    healthy: bool = True
    num_requests: int = 0
    fails: int = 0

    model_config = {"extra": "allow"}

    @field_validator("healthy", mode="before")
    @classmethod
    def missing_health_is_up(cls, value):
        # Only an explicit false marks an upstream down.
        return True if value is None else value


class UpstreamStats(BaseModel):
    total: int = 0
    up: int = 0
    down: int = 0


class DashboardSummary(BaseModel):
    reachable: bool
    route_count: int
    upstream_stats: UpstreamStats
    error: str | None = None


class UpstreamCheckResult(BaseModel):
    status: int | None = None
    error: str | None = None


# --- Metrics ---


class MetricSample(BaseModel):
    labels: dict[str, str] = Field(default_factory=dict)
    value: str


class MetricSeries(BaseModel):
    name: str
    help: str = ""
    type: str = ""
    samples: list[MetricSample] = Field(default_factory=list)
    simple: bool = False


class MetricGroup(BaseModel):
    id: str
    label: str
    metrics: list[MetricSeries] = Field(default_factory=list)


# --- Requests ---


class AddRouteRequest(BaseModel):
    match_host: str | None = None
    match_path: str | None = None
    upstream: str = Field(..., min_length=1, max_length=512)

    @field_validator("match_host", "match_path", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("upstream")
    @classmethod
    def upstream_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Upstream address is required")
        return value
