"""Prometheus text exposition parsing and grouping for the metrics view."""

from __future__ import annotations

import logging
import re

from .models import MetricGroup, MetricSample, MetricSeries

logger = logging.getLogger(__name__)

# name{labels} value [timestamp]
SAMPLE_RE = re.compile(
    r"^(?P<name>[a-zA-Z_:][a-zA-Z0-9_:]*)"
    r"(?:\{(?P<labels>.*)\})?"
    r"\s+(?P<value>\S+)"
    r"(?:\s+-?\d+)?$"
)
LABEL_RE = re.compile(r'(?P<key>[a-zA-Z_][a-zA-Z0-9_]*)\s*=\s*"(?P<value>(?:[^"\\]|\\.)*)"')
_LABEL_ESCAPE_RE = re.compile(r"\\(.)")
_LABEL_ESCAPES = {"n": "\n", '"': '"', "\\": "\\"}
_HELP_ESCAPES = {"n": "\n", "\\": "\\"}

HISTOGRAM_BUCKET_SUFFIX = "_bucket"

DEFAULT_METRIC_GROUPS: list[dict[str, str]] = [
    {"id": "http", "label": "HTTP Server", "prefix": "caddy_http_"},
    {"id": "reverse_proxy", "label": "Reverse Proxy", "prefix": "caddy_reverse_proxy_"},
    {"id": "admin", "label": "Admin API", "prefix": "caddy_admin_"},
    {"id": "runtime", "label": "Go Runtime", "prefix": "go_"},
    {"id": "process", "label": "Process", "prefix": "process_"},
]
CATCH_ALL_GROUP = {"id": "other", "label": "Other"}


def _unescape(value: str, escapes: dict[str, str] = _LABEL_ESCAPES) -> str:
    return _LABEL_ESCAPE_RE.sub(lambda m: escapes.get(m.group(1), m.group(0)), value)


def parse_labels(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    return {m.group("key"): _unescape(m.group("value")) for m in LABEL_RE.finditer(raw)}


def parse_prometheus_text(text: str | None) -> dict[str, MetricSeries]:
    """Parse exposition text into series keyed by metric name.

    HELP, TYPE and sample lines may arrive in any order; a series is created
    on first mention. Values stay as the literal text (`+Inf`, `NaN`, `1e-05`).
    Lines that do not look like a sample are skipped.
    """
    series: dict[str, MetricSeries] = {}

    def get(name: str) -> MetricSeries:
        if name not in series:
            series[name] = MetricSeries(name=name)
        return series[name]

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#"):
            parts = line.split(None, 3)
            if len(parts) >= 3 and parts[1] == "HELP":
                get(parts[2]).help = _unescape(parts[3], _HELP_ESCAPES) if len(parts) > 3 else ""
            elif len(parts) >= 4 and parts[1] == "TYPE":
                get(parts[2]).type = parts[3].strip()
            continue

        match = SAMPLE_RE.match(line)
        if not match:
            logger.debug("Skipping malformed metrics line: %s", line[:200])
            continue
        get(match.group("name")).samples.append(
            MetricSample(labels=parse_labels(match.group("labels")), value=match.group("value"))
        )

    return series


def is_simple(series: MetricSeries) -> bool:
    return len(series.samples) == 1 and not series.samples[0].labels


def classify_metrics(
    series_map: dict[str, MetricSeries],
    groups: list[dict[str, str]] | None = None,
) -> list[MetricGroup]:
    """Bucket series by name prefix, in bucket order, dropping empty buckets.

    Histogram `_bucket` series and series without samples are left out. The
    first matching prefix wins; unmatched series land in the catch-all.
    """
    definitions = list(groups if groups is not None else DEFAULT_METRIC_GROUPS)
    buckets: dict[str, MetricGroup] = {
        d["id"]: MetricGroup(id=d["id"], label=d["label"]) for d in definitions
    }
    catch_all = MetricGroup(**CATCH_ALL_GROUP)

    for name, series in series_map.items():
        if name.endswith(HISTOGRAM_BUCKET_SUFFIX) or not series.samples:
            continue
        retained = series.model_copy(update={"simple": is_simple(series)})
        target = next(
            (buckets[d["id"]] for d in definitions if name.startswith(d["prefix"])),
            catch_all,
        )
        target.metrics.append(retained)

    ordered = [buckets[d["id"]] for d in definitions] + [catch_all]
    return [group for group in ordered if group.metrics]
