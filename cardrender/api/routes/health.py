"""
Health Routes
=============

Liveness and theme listing endpoints.
"""

from fastapi import APIRouter, Request

from cardrender.models.schemas import HealthStatus, ThemesResponse

router = APIRouter(tags=["Health"])


@router.get("/healthz", response_model=HealthStatus)
@router.get("/api/healthz", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """Basic health check endpoint."""
    settings = request.app.state.settings
    registry = request.app.state.registry
    themes = len(registry.list_headless())
    return HealthStatus(
        status="ok" if themes else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        themes=themes,
    )


@router.get("/themes", response_model=ThemesResponse, tags=["Themes"])
@router.get("/api/themes", response_model=ThemesResponse, tags=["Themes"])
async def list_themes(request: Request) -> ThemesResponse:
    """Headless-renderable themes sorted by id."""
    return ThemesResponse(themes=request.app.state.registry.summaries(headless_only=True))
