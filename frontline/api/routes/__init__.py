"""API route registration."""

from fastapi import APIRouter, FastAPI

from frontline.api.routes.calls import router as calls_router
from frontline.api.routes.health import router as health_router
from frontline.api.routes.tenants import router as tenants_router
from frontline.observability.logging import get_logger

logger = get_logger(__name__)


def create_v1_router() -> APIRouter:
    router = APIRouter(prefix="/v1")
    router.include_router(calls_router, tags=["Calls"])
    router.include_router(tenants_router, tags=["Tenants"])
    return router


def register_routes(app: FastAPI) -> None:
    """Register the v1 routes and the root-level health routes."""
    app.include_router(create_v1_router())
    app.include_router(health_router, tags=["Health"])
    logger.debug("routes_registered")
