"""Health check and metrics endpoints."""

import time
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from frontline import __version__
from frontline.api.dependencies import RuntimeDep
from frontline.api.models import ComponentHealth, HealthResponse
from frontline.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _check(component: object, name: str) -> ComponentHealth:
    start = time.perf_counter()
    try:
        healthy = await component.health_check()
    except Exception as e:  # noqa: BLE001
        return ComponentHealth(
            name=name,
            status="unhealthy",
            latency_ms=(time.perf_counter() - start) * 1000,
            message=str(e),
        )
    return ComponentHealth(
        name=name,
        status="healthy" if healthy else "unhealthy",
        latency_ms=(time.perf_counter() - start) * 1000,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(runtime: RuntimeDep) -> HealthResponse:
    """Report the cache and session store status."""
    components = [
        await _check(runtime.cache, "artifact_cache"),
        await _check(runtime.session_store, "session_store"),
    ]
    unhealthy = sum(1 for c in components if c.status == "unhealthy")

    overall: Literal["healthy", "degraded", "unhealthy"]
    if unhealthy == 0:
        overall = "healthy"
    elif unhealthy < len(components):
        overall = "degraded"
    else:
        overall = "unhealthy"

    logger.debug("health_check_completed", status=overall)
    return HealthResponse(
        status=overall,
        version=__version__,
        components=components,
        timestamp=datetime.now(UTC),
    )


@router.get("/metrics")
async def get_metrics() -> Response:
    """Prometheus metrics in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
