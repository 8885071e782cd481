"""FastAPI host application for ratewarden.

The rate limited endpoints stand in for the surrounding product (sign-in,
AI analysis, quota, public pages); their bodies are placeholders, the point is
the admission contract wrapped around them.
"""

import time
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ratewarden import __version__
from ratewarden.config import get_settings
from ratewarden.janitor import StoreJanitor
from ratewarden.logging import setup_logging
from ratewarden.metrics import metrics
from ratewarden.middleware import rate_limit
from ratewarden.models import RateLimitStats
from ratewarden.service import get_service
from ratewarden.store import get_store

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    # Startup
    setup_logging()
    settings = get_settings()
    logger.info("ratewarden_starting", version=__version__, store=settings.store_backend)

    store = get_store()
    try:
        await store.connect()
    except Exception as e:
        logger.error("store_connection_failed", error=str(e))
        raise

    janitor = StoreJanitor(store)
    if settings.janitor_enabled:
        janitor.start()
    app.state.janitor = janitor

    yield

    # Shutdown
    await janitor.stop()
    await store.disconnect()
    logger.info("ratewarden_stopped")


app = FastAPI(
    title="ratewarden",
    version=__version__,
    description="Request-rate admission control",
    lifespan=lifespan,
)


# === Middleware ===


@app.middleware("http")
async def metrics_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Record HTTP metrics for each request."""
    start_time = time.perf_counter()

    response: Response = await call_next(request)

    duration = time.perf_counter() - start_time
    endpoint = request.url.path
    method = request.method

    metrics.http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration.labels(
        method=method,
        endpoint=endpoint,
    ).observe(duration)

    return response


# === Health endpoints ===


@app.get("/health", tags=["Health"])
async def health() -> dict[str, Any]:
    """Health check endpoint."""
    store_healthy = await get_store().health_check()

    return {
        "status": "healthy" if store_healthy else "degraded",
        "version": __version__,
        "checks": {
            "store": "ok" if store_healthy else "error",
        },
    }


@app.get("/ready", tags=["Health"])
async def ready() -> dict[str, str]:
    """Readiness check endpoint."""
    if not await get_store().health_check():
        raise HTTPException(status_code=503, detail="State store not available")
    return {"status": "ready"}


# === Observability ===


@app.get("/metrics", tags=["Observability"])
async def prometheus_metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/ratelimit/stats", response_model=RateLimitStats, tags=["Observability"])
async def rate_limit_stats() -> RateLimitStats:
    """Key counts held by the state store."""
    return await get_service().stats()


# === Rate limited endpoints ===


@app.post("/auth/signin", tags=["Auth"])
@rate_limit("auth")
async def sign_in(request: Request) -> Response:
    return JSONResponse({"status": "accepted"})


@app.post("/analysis", tags=["Analysis"])
@rate_limit("analysis")
async def submit_analysis(request: Request) -> Response:
    """Queue a document for analysis."""
    return JSONResponse(
        status_code=202,
        content={"sessionId": uuid.uuid4().hex, "status": "queued"},
    )


@app.get("/api/quota", tags=["API"])
@rate_limit("api")
async def quota(request: Request) -> Response:
    return JSONResponse({"status": "ok"})


@app.get("/public/status", tags=["Public"])
@rate_limit("public")
async def public_status(request: Request) -> Response:
    return JSONResponse({"status": "ok", "version": __version__})


# === Error handlers ===


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Factory function to create the app."""
    return app
