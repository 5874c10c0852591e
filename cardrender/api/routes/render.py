"""
Render Routes
=============

PNG rendering endpoint backed by the headless render service.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from cardrender.api.auth import require_write_access
from cardrender.config.logging import get_logger
from cardrender.core.errors import ValidationFailure
from cardrender.core.rendering.headless import HeadlessRenderService

logger = get_logger(__name__)

router = APIRouter(tags=["Rendering"])


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw or b"null")
    except ValueError as e:
        raise ValidationFailure("Invalid JSON body", cause=e)


@router.post(
    "/render",
    dependencies=[Depends(require_write_access)],
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
@router.post(
    "/api/render",
    dependencies=[Depends(require_write_access)],
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def render_png(request: Request) -> Response:
    """
    Render card content to a 1920x1080 PNG.

    Body: ``{templateId, mainTitle, cards: [{title, desc, icon}], dpr}``.
    """
    service: HeadlessRenderService = request.app.state.render_service
    render_request = service.parse_request(await read_json_body(request))
    png = await service.render(render_request)

    logger.info(
        "Render served",
        template_id=render_request.template_id,
        dpr=render_request.dpr,
        file_size=len(png),
        request_id=getattr(request.state, "request_id", None),
    )
    return Response(
        content=png,
        media_type="image/png",
        headers={
            "Cache-Control": "no-store",
            "X-Template-Id": render_request.template_id,
            "X-DPR": str(render_request.dpr),
        },
    )
