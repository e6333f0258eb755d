from pathlib import Path

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    admin_url: str = "http://127.0.0.1:2019"
    request_timeout_seconds: float = 10.0
    metrics_path: str = "/metrics"
    tcp_check_timeout_ms: int = 3000
    max_subroute_depth: int | None = None
    metric_groups_path: str = ""
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 1240

    model_config = {"env_prefix": "CADDY_ADAPTER_"}


settings = Settings()


def load_metric_groups_config(path: str | None = None) -> list[dict] | None:
    """Load metric bucket definitions from YAML, or None when not configured."""
    config_path = path if path is not None else settings.metric_groups_path
    if not config_path:
        return None
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Metric groups config not found: {config_file}")
    with open(config_file) as f:
        raw = yaml.safe_load(f) or {}
    groups = raw.get("groups", []) if isinstance(raw, dict) else raw
    if not isinstance(groups, list):
        raise ValueError(f"Metric groups config must be a list: {config_file}")
    for entry in groups:
        if not isinstance(entry, dict) or not {"id", "label", "prefix"} <= entry.keys():
            raise ValueError(f"Metric group entry needs id, label and prefix: {entry!r}")
    return groups
