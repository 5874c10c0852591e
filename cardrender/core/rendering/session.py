"""
Preview Session
===============

A live browser page to mount and export card content from.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.errors import RenderFailed, UpstreamTimeout
from cardrender.core.rendering.document import build_preview_document
from cardrender.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH

logger = get_logger(__name__)


@asynccontextmanager
async def preview_session(
    settings: Optional[Settings] = None,
    include_external: bool = True,
    device_scale_factor: Optional[float] = None,
    playwright_factory: Callable[[], Any] = async_playwright,
) -> AsyncGenerator[Page, None]:
    """
    Open a 1920x1080 page loaded with a blank preview document.

    Args:
        settings: Settings override
        include_external: Link web fonts and the Tailwind runtime into the page
        device_scale_factor: Page device scale; defaults to the export pixel ratio
        playwright_factory: Driver factory, ``async_playwright`` by default

    Yields:
        The live page; browser and driver are closed on exit

    Raises:
        RenderFailed: If the browser could not be launched or the page opened
        UpstreamTimeout: If the preview document did not load within the bound
    """
    settings = settings or get_settings()
    scale = device_scale_factor or settings.export_pixel_ratio
    launch_options: Dict[str, Any] = {
        "headless": settings.playwright_headless,
        "args": settings.chromium_args(),
    }
    if settings.chromium_executable_path:
        launch_options["executable_path"] = str(settings.chromium_executable_path)

    async with playwright_factory() as playwright:
        try:
            browser = await playwright.chromium.launch(**launch_options)
        except PlaywrightError as e:
            logger.error("Browser launch failed", error=str(e))
            raise RenderFailed(f"Browser launch failed: {e}", cause=e)

        try:
            try:
                context = await browser.new_context(
                    viewport={"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
                    device_scale_factor=scale,
                )
                page = await context.new_page()
                await page.set_content(
                    build_preview_document(settings, include_external=include_external),
                    wait_until="load",
                    timeout=settings.set_content_timeout_ms,
                )
            except PlaywrightTimeoutError as e:
                raise UpstreamTimeout(
                    f"Preview document load exceeded {settings.set_content_timeout_ms}ms", cause=e
                )
            except PlaywrightError as e:
                raise RenderFailed(f"Preview page failed to open: {e}", cause=e)

            logger.info("Preview session opened", device_scale_factor=scale, external=include_external)
            yield page
        finally:
            await browser.close()
            logger.info("Preview session closed")
