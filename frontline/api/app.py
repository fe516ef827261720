"""FastAPI application factory.

Creates the application with CORS, the global exception handlers and the
registered routes.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from frontline import __version__
from frontline.api.dependencies import get_settings, reset_dependencies
from frontline.api.exceptions import FrontlineAPIError
from frontline.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from frontline.api.routes import register_routes
from frontline.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await reset_dependencies()
    logger.info("app_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
        redact_pii=settings.observability.redact_pii,
    )

    app = FastAPI(
        title="Frontline API",
        description="Decision core for automated phone reception",
        version=__version__,
        lifespan=_lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    register_routes(app)

    logger.info("app_created", cors_origins=settings.api.cors_origins)
    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FrontlineAPIError)
    async def frontline_api_error_handler(request: Request, exc: FrontlineAPIError) -> JSONResponse:
        logger.warning(
            "api_error",
            error_code=exc.error_code.value,
            message=exc.message,
            path=request.url.path,
        )
        body = ErrorBody(code=exc.error_code, message=exc.message, call_id=exc.call_id)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=body).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("validation_error", path=request.url.path, error_count=len(exc.errors()))
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        body = ErrorBody(
            code=ErrorCode.INVALID_REQUEST,
            message="Request validation failed",
            details=details,
        )
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=body).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        body = ErrorBody(code=ErrorCode.INTERNAL_ERROR, message="An unexpected error occurred")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=body).model_dump(mode="json"),
        )


def run() -> None:
    """Serve the API with uvicorn using the configured bind address."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(), host=settings.api.host, port=settings.api.port)
