from __future__ import annotations

import platform
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from valhalla_api.api.data import router as data_router
from valhalla_api.api.metrics import router as metrics_router
from valhalla_api.api.status import router as status_router
from valhalla_api.config import Settings, get_settings
from valhalla_api.context import AppContext, get_context
from valhalla_api.errors import BoundaryErrorMiddleware, register_exception_handlers
from valhalla_api.models.schemas import HealthResponse, ReadinessResponse
from valhalla_api.observability.logging import configure_logging, install_async_error_logging
from valhalla_api.observability.middleware import RequestContextMiddleware
from valhalla_api.security import SecurityHeadersMiddleware
from valhalla_api.services.runtime import process_uptime, utc_timestamp


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    ctx: AppContext = app.state.context
    install_async_error_logging()
    structlog.get_logger("server").info(
        "server_started",
        port=ctx.settings.port,
        environment=ctx.settings.environment,
        python_version=platform.python_version(),
    )
    yield
    structlog.get_logger("server").info("server_stopped")


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    if context is None:
        context = AppContext(settings=settings or get_settings())
    settings = context.settings

    configure_logging(
        settings.log_level,
        json_logs=settings.is_production,
        service=settings.service_name,
    )

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.context = context

    # Starlette runs the last added middleware first: security headers, CORS,
    # request timing, then the error boundary closest to the routes.
    app.add_middleware(BoundaryErrorMiddleware)
    app.add_middleware(RequestContextMiddleware, metrics=context.metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(metrics_router)
    app.include_router(status_router)
    app.include_router(data_router)

    @app.api_route("/health", methods=["GET", "HEAD"], response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="healthy", timestamp=utc_timestamp(), uptime=process_uptime())

    @app.api_route(
        "/ready",
        methods=["GET", "HEAD"],
        response_model=ReadinessResponse,
        responses={503: {"model": ReadinessResponse}},
    )
    async def ready(ctx: AppContext = Depends(get_context)) -> ReadinessResponse | JSONResponse:
        if ctx.is_ready():
            return ReadinessResponse(status="ready", timestamp=utc_timestamp())
        return JSONResponse(
            status_code=503,
            content=ReadinessResponse(status="not ready", timestamp=utc_timestamp()).model_dump(),
        )

    return app
