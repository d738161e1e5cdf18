"""Health check endpoints.

Kubernetes-style health checks:
- /health/live - Liveness probe (is the process alive?)
- /health/ready - Readiness probe (can it serve traffic?)
- /health - Combined check with actual dependency validation
- /metrics - Prometheus scrape endpoint
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from blog_search_api import schemas
from blog_search_api import service
from blog_search_api.metrics import metrics_endpoint

router = APIRouter()


@router.get("/health/live")
async def liveness() -> dict:
    """Liveness probe - is the process alive?"""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness():
    """Readiness probe - can the service handle traffic?

    Returns 200 only when the database answers; 503 otherwise.
    """
    start = time.time()
    ready = await service.database_ready()
    elapsed_ms = (time.time() - start) * 1000

    body = {
        "status": "ready" if ready else "not_ready",
        "components": {"database": {"status": "ready" if ready else "not_ready"}},
        "check_duration_ms": round(elapsed_ms, 2),
    }
    return JSONResponse(body, status_code=200 if ready else 503)


@router.get("/health", response_model=schemas.HealthCheck)
async def health_check() -> schemas.HealthCheck:
    """Primary health check; pings the database."""
    connected = await service.database_ready()

    return schemas.HealthCheck(
        status="healthy" if connected else "degraded",
        version="1.0.0",
        database="connected" if connected else "disconnected",
        avatar_signing="enabled" if service.avatar_signing_enabled() else "passthrough",
    )


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics in text exposition format."""
    return await metrics_endpoint(request)
