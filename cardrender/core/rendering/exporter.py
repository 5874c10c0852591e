"""
Export Orchestrator
===================

Drives one export from a live preview page: mount an offscreen render
target, fit it, wait for it to settle, then serialize it into a standalone
document or capture it as an image. PNG exports can prefer the remote render
API and fall back to local capture once the remote attempt has finished.
"""

import asyncio
import time
from typing import Any, Optional, Tuple, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.errors import CaptureFailed, CardRenderError
from cardrender.core.layout.interpreter import run_title_fit, run_viewport_fit
from cardrender.core.layout.procedures import (
    BottomReserveProcedure,
    TitleFitProcedure,
    ViewportFitProcedure,
)
from cardrender.core.rendering.capture import ArtifactCapturer, CaptureResult
from cardrender.core.rendering.document import build_export_document
from cardrender.core.rendering.live import RenderTarget, next_frame, wait_for_fonts
from cardrender.core.rendering.remote import RenderApiClient
from cardrender.core.themes.base import Theme
from cardrender.core.themes.registry import ThemeRegistry
from cardrender.models.schemas import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CaptureOptions,
    CardContent,
    ExportFormat,
    ExportJob,
    ExportResult,
    ExportState,
    PngRenderer,
)

logger = get_logger(__name__)

MIN_SCENE_SCALE = 0.1
MAX_SCENE_SCALE = 4.0
MIN_RENDER_SCALE = 1.0
MAX_RENDER_SCALE = 8.0

ThemeRef = Union[Theme, str]


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return min(maximum, max(minimum, value))


def export_filename(template_id: str, fmt: ExportFormat, now_ms: Optional[int] = None) -> str:
    """``{templateId}-{unixMillis}.{ext}``"""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{template_id}-{stamp}.{fmt.value}"


def source_geometry(box_width: float, pixel_ratio: float) -> Tuple[int, int, float]:
    """
    Capture size and render scale for an already-mounted, possibly scaled source.

    Returns:
        Tuple of (width, height, render_scale)
    """
    scene_scale = _clamp(box_width / CANVAS_WIDTH, MIN_SCENE_SCALE, MAX_SCENE_SCALE)
    width = int(round(CANVAS_WIDTH * scene_scale))
    height = int(round(CANVAS_HEIGHT * scene_scale))
    render_scale = _clamp(pixel_ratio / scene_scale, MIN_RENDER_SCALE, MAX_RENDER_SCALE)
    return width, height, render_scale


class ExportOrchestrator:
    """Exports card content from a live page as a document or an image."""

    def __init__(
        self,
        registry: ThemeRegistry,
        settings: Optional[Settings] = None,
        capturer: Optional[ArtifactCapturer] = None,
        remote_client: Optional[RenderApiClient] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self.capturer = capturer or ArtifactCapturer(settings=self.settings)
        self.remote_client = remote_client or RenderApiClient(settings=self.settings)
        self.logger: Any = logger.bind(component="export_orchestrator")

    def _resolve_theme(self, theme: ThemeRef) -> Theme:
        return self.registry.require(theme) if isinstance(theme, str) else theme

    def _job(self, options: Optional[ExportJob]) -> ExportJob:
        if options is not None:
            return options
        return ExportJob(
            pixel_ratio=self.settings.export_pixel_ratio,
            background_color=self.settings.background_color,
            bottom_reserved_px=self.settings.bottom_reserved_px,
        )

    def _transition(self, state: ExportState, **fields: Any) -> None:
        self.logger.info("Export state", state=state.value, **fields)

    async def fit_target(self, target: RenderTarget, theme: Theme, content: CardContent, job: ExportJob) -> None:
        """Bottom reserve, title fit, then viewport fit against the mounted subtree."""
        document = target.live_document()
        title_config = theme.layout_for(content).title_config

        await document.apply_bottom_reserve(BottomReserveProcedure(reserve_px=job.bottom_reserved_px))
        await run_title_fit(document, TitleFitProcedure.from_title_config(title_config))
        await run_viewport_fit(document, ViewportFitProcedure())

    async def export_as_document(
        self,
        page: Page,
        theme: ThemeRef,
        content: CardContent,
        options: Optional[ExportJob] = None,
    ) -> str:
        """
        Serialize fitted content into a standalone HTML document.

        Args:
            page: Live preview page
            theme: Theme or theme id
            content: Validated card content
            options: Export parameters; settings defaults when omitted

        Returns:
            HTML text with the layout script inlined

        Raises:
            CaptureFailed: If the page failed while mounting, fitting, or serializing
        """
        resolved = self._resolve_theme(theme)
        job = self._job(options)

        self._transition(ExportState.MOUNTING, theme_id=resolved.id, kind="document")
        try:
            async with RenderTarget(page, resolved.render(content, scale=1.0)) as target:
                await self.fit_target(target, resolved, content, job)
                self._transition(ExportState.SETTLING, theme_id=resolved.id)
                await next_frame(page)
                await asyncio.sleep(self.settings.document_settle_ms / 1000)
                await wait_for_fonts(page, self.settings.font_wait_timeout_ms)
                inner = await target.inner_html()
                self._transition(ExportState.TEARDOWN, theme_id=resolved.id)
        except PlaywrightError as e:
            self._transition(ExportState.FAILED, theme_id=resolved.id, error=str(e))
            raise CaptureFailed(f"Document export failed: {e}", cause=e)

        html = build_export_document(
            resolved,
            content,
            inner,
            bottom_reserved_px=job.bottom_reserved_px,
            settings=self.settings,
        )
        self._transition(ExportState.SUCCEEDED, theme_id=resolved.id, html_length=len(html))
        return html

    async def _try_remote(self, theme: Theme, content: CardContent, job: ExportJob) -> Optional[bytes]:
        """Remote render; any failure is logged and reported as None."""
        dpr = 2 if job.pixel_ratio >= 2 else 1
        try:
            return await self.remote_client.render_png(theme.id, content, dpr=dpr)
        except CardRenderError as e:
            self.logger.warning(
                "Remote render failed, falling back to local capture",
                error=e.message,
                error_code=e.error_code,
            )
            return None

    async def _capture_local(
        self,
        page: Page,
        theme: Theme,
        content: CardContent,
        job: ExportJob,
        source: Optional[Locator],
    ) -> CaptureResult:
        settle_ms = job.wait_for_layout_ms if job.wait_for_layout_ms is not None else self.settings.layout_settle_ms

        if source is not None:
            box = await source.bounding_box()
            if box and box["width"] > 0:
                width, height, render_scale = source_geometry(box["width"], job.pixel_ratio)
                options = CaptureOptions(
                    width=width,
                    height=height,
                    pixel_ratio=render_scale,
                    background_color=job.background_color,
                    format=job.format,
                    settle_ms=settle_ms,
                )
                self._transition(ExportState.CAPTURING, theme_id=theme.id, source="mounted")
                return await self.capturer.capture_artifact(source, options)
            self.logger.warning("Source element has no size, mounting a fresh target")

        self._transition(ExportState.MOUNTING, theme_id=theme.id, kind="image")
        async with RenderTarget(page, theme.render(content, scale=1.0)) as target:
            await self.fit_target(target, theme, content, job)
            self._transition(ExportState.SETTLING, theme_id=theme.id, settle_ms=settle_ms)
            options = CaptureOptions(
                width=CANVAS_WIDTH,
                height=CANVAS_HEIGHT,
                pixel_ratio=job.pixel_ratio,
                background_color=job.background_color,
                format=job.format,
                settle_ms=settle_ms,
            )
            self._transition(ExportState.CAPTURING, theme_id=theme.id, source="offscreen")
            try:
                return await self.capturer.capture_artifact(target.locator, options)
            finally:
                self._transition(ExportState.TEARDOWN, theme_id=theme.id)

    async def export_as_image(
        self,
        page: Page,
        theme: ThemeRef,
        content: CardContent,
        options: Optional[ExportJob] = None,
        source: Optional[Locator] = None,
    ) -> ExportResult:
        """
        Capture content as a PNG or SVG image.

        Args:
            page: Live preview page
            theme: Theme or theme id
            content: Validated card content
            options: Export parameters; settings defaults when omitted
            source: Already-mounted element to capture instead of a fresh target

        Returns:
            ExportResult with bytes, filename, and the backend that produced them

        Raises:
            CaptureFailed: If every local capture strategy failed, or the page
                failed while mounting or fitting the target
        """
        resolved = self._resolve_theme(theme)
        job = self._job(options)
        renderer = job.renderer or PngRenderer(self.settings.png_renderer)
        filename = export_filename(job.template_id or resolved.id, job.format)
        self._transition(ExportState.IDLE, theme_id=resolved.id, format=job.format.value, renderer=renderer.value)

        if renderer == PngRenderer.REMOTE and job.format == ExportFormat.PNG:
            data = await self._try_remote(resolved, content, job)
            if data is not None:
                self._transition(ExportState.SUCCEEDED, theme_id=resolved.id, backend="remote")
                return ExportResult(
                    data=data,
                    format=job.format,
                    filename=filename,
                    media_type="image/png",
                    backend="remote",
                )
            self._transition(ExportState.FALLBACK_CAPTURING, theme_id=resolved.id)

        try:
            captured = await self._capture_local(page, resolved, content, job, source)
        except CardRenderError as e:
            self._transition(ExportState.FAILED, theme_id=resolved.id, error=e.message)
            raise
        except PlaywrightError as e:
            self._transition(ExportState.FAILED, theme_id=resolved.id, error=str(e))
            raise CaptureFailed(f"Capture failed: {e}", cause=e)

        self._transition(
            ExportState.SUCCEEDED,
            theme_id=resolved.id,
            backend=captured.strategy,
            degraded=captured.degraded,
            file_size=len(captured.data),
        )
        return ExportResult(
            data=captured.data,
            format=job.format,
            filename=filename,
            media_type=captured.media_type,
            backend=captured.strategy,
        )
