"""
FastAPI Application
==================

Render API: POST card content, receive a PNG rendered in an isolated
headless browser. Also serves health and theme listing endpoints.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from cardrender.api.routes.health import router as health_router
from cardrender.api.routes.render import router as render_router
from cardrender.config.logging import bind_log_context, clear_log_context, get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.errors import CardRenderError
from cardrender.core.rendering.headless import HeadlessRenderService
from cardrender.core.themes.catalog import build_default_registry
from cardrender.core.themes.registry import ThemeRegistry
from cardrender.models.schemas import ErrorResponse

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def check_write_policy(settings: Settings) -> None:
    """Refuse to start when writes are neither token-protected nor explicitly open."""
    if not settings.api_bearer_token and not settings.allow_unauthenticated_write:
        raise RuntimeError(
            "No API bearer token configured and unauthenticated writes are disabled; "
            "set CARDRENDER_API_BEARER_TOKEN or CARDRENDER_ALLOW_UNAUTHENTICATED_WRITE=true"
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    check_write_policy(settings)
    logger.info(
        "Starting render API",
        environment=settings.environment,
        themes=len(app.state.registry),
        auth="token" if settings.api_bearer_token else "open",
    )
    try:
        yield
    finally:
        logger.info("Shutting down render API")


def _error_response(request: Request, status_code: int, message: str, error_code: str) -> JSONResponse:
    body = ErrorResponse(
        error=message,
        error_code=error_code,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ThemeRegistry] = None,
    render_service: Optional[HeadlessRenderService] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings override
        registry: Theme registry; the built-in themes by default
        render_service: Headless render service; built from the registry by default

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    if registry is None:
        registry = build_default_registry()
    render_service = render_service or HeadlessRenderService(registry, settings=settings)

    app = FastAPI(
        title=settings.app_name,
        description="Render title/description/icon cards to 1920x1080 PNG images",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.render_service = render_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "X-Template-Id", "X-DPR"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Echo or assign a request id."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        clear_log_context()
        bind_log_context(request_id=request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(CardRenderError)
    async def card_render_error_handler(request: Request, exc: CardRenderError) -> JSONResponse:
        """Map the error taxonomy onto status codes without leaking internals."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            path=request.url.path,
            status_code=exc.status_code,
            error_code=exc.error_code,
            error=exc.message,
            request_id=getattr(request.state, "request_id", None),
        )
        return _error_response(request, exc.status_code, exc.message, exc.error_code)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        logger.error(
            "Unhandled exception",
            exception=str(exc),
            request_id=getattr(request.state, "request_id", None),
            exc_info=True,
        )
        return _error_response(request, 500, "Internal server error", "INTERNAL_ERROR")

    app.include_router(health_router)
    app.include_router(render_router)
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "cardrender.api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
