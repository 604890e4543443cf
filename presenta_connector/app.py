"""
Application factory - builds FastAPI app with middleware and routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from presenta_connector import __version__
from presenta_connector.config import Settings, get_settings, init_settings
from presenta_connector.modules.health.router import router as health_router
from presenta_connector.modules.render.router import router as render_router
from presenta_connector.shared.errors import PresentaError
from presenta_connector.shared.ids import generate_request_id
from presenta_connector.shared.logging import (
    clear_request_context,
    get_logger,
    get_request_context,
    set_request_context,
    setup_logging,
)
from presenta_connector.shared.types import RequestContext

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()

    setup_logging(settings.log_level)
    logger.info("Starting Presenta connector...")
    logger.info(f"Presenta API: {settings.base_url}")
    if settings.api_token is None:
        logger.warning("No PRESENTA_API_TOKEN configured; requests must carry their own bearer token")

    yield

    logger.info("Presenta connector stopped")


def build_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Optional settings override (useful for testing)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()
    else:
        init_settings(settings)

    app = FastAPI(
        title="Presenta Connector",
        description="Render Presenta templates into PDF and image artifacts",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Response:
        """Attach request context for logging and tracing."""
        ctx = RequestContext(
            request_id=request.headers.get("X-Request-ID", generate_request_id()),
            actor=request.headers.get("X-Actor", "system"),
        )
        set_request_context(ctx)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = ctx.request_id
            return response
        finally:
            clear_request_context()

    @app.exception_handler(PresentaError)
    async def presenta_error_handler(request: Request, exc: PresentaError) -> JSONResponse:
        """Handle PresentaError with consistent JSON response."""
        ctx = get_request_context()
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "error": exc.to_dict(),
                "request_id": ctx.request_id if ctx else None,
            },
        )

    @app.exception_handler(ValidationError)
    async def config_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Invalid item config inside a batch that is not continuing on failure."""
        ctx = get_request_context()
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "INVALID_CONFIG",
                    "message": str(exc),
                    "details": {"errors": exc.errors(include_url=False, include_context=False)},
                },
                "request_id": ctx.request_id if ctx else None,
            },
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(render_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"service": "Presenta Connector", "version": __version__}

    return app
