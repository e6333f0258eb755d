"""Caddy adapter — JSON API over the Caddy admin endpoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .admin_client import AdminClient
from .config import load_metric_groups_config, settings

logger = logging.getLogger(__name__)

# Shared state populated at startup
_admin_client: AdminClient | None = None
_metric_groups: list[dict] | None = None


def build_admin_client() -> AdminClient:
    return AdminClient(
        settings.admin_url,
        timeout=settings.request_timeout_seconds,
        metrics_path=settings.metrics_path,
    )


def get_admin_client() -> AdminClient:
    if _admin_client is None:
        raise RuntimeError("Admin client is not initialized")
    return _admin_client


def get_metric_groups() -> list[dict] | None:
    return _metric_groups


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging, load metric buckets, open the admin client pool."""
    global _admin_client, _metric_groups

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _metric_groups = load_metric_groups_config()
    if _metric_groups is not None:
        logger.info("Loaded %d metric groups from %s", len(_metric_groups), settings.metric_groups_path)

    _admin_client = build_admin_client()
    await _admin_client.start()
    logger.info("Caddy adapter started (admin API %s)", _admin_client.base_url)

    yield

    await _admin_client.stop()
    _admin_client = None
    logger.info("Caddy adapter stopped")


app = FastAPI(title="Caddy Adapter", version="1.0.0", lifespan=lifespan)


# --- Error handling ---


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- Health endpoint ---


@app.get("/health")
async def health():
    """Adapter health, including whether the Caddy admin API answers."""
    admin = await get_admin_client().health_check()
    return {
        "status": "healthy" if admin["status"] == "healthy" else "degraded",
        "admin": admin,
    }


from .router_caddy import router as caddy_router  # noqa: E402

app.include_router(caddy_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
