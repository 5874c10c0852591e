"""
Headless Render Service
=======================

Renders card content to PNG in a dedicated Chromium process per request.
Requests are normalized and validated before any process is launched; the
browser, its context, and the Playwright driver are released exactly once
on every exit path.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

from playwright.async_api import Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.content import normalize_icon, sanitize_desc_html
from cardrender.core.errors import CardRenderError, RenderFailed, UpstreamTimeout, ValidationFailure
from cardrender.core.rendering.document import build_static_document, local_font_css
from cardrender.core.rendering.live import wait_for_fonts
from cardrender.core.themes.registry import ThemeRegistry
from cardrender.models.schemas import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    MAX_CARDS,
    MIN_CARDS,
    HeadlessRenderRequest,
    RenderCardPayload,
)

logger = get_logger(__name__)

PlaywrightFactory = Callable[[], Any]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_request(body: Any) -> HeadlessRenderRequest:
    """
    Normalize a raw JSON body into a render request.

    Strings are trimmed, descriptions sanitized, and icons normalized with a
    fallback to ``article``. Nothing here rejects content; that is left to
    ``validate_request``.

    Raises:
        ValidationFailure: If the body is not a JSON object
    """
    if not isinstance(body, dict):
        raise ValidationFailure("Request body must be a JSON object")

    raw_cards = body.get("cards")
    cards: List[RenderCardPayload] = []
    for item in raw_cards if isinstance(raw_cards, list) else []:
        card: Dict[str, Any] = item if isinstance(item, dict) else {}
        cards.append(
            RenderCardPayload(
                title=_text(card.get("title")),
                desc=sanitize_desc_html(_text(card.get("desc"))),
                icon=normalize_icon(_text(card.get("icon"))),
            )
        )

    return HeadlessRenderRequest(
        template_id=_text(body.get("templateId")),
        main_title=_text(body.get("mainTitle")),
        cards=cards,
        dpr=2 if body.get("dpr") == 2 else 1,
    )


class HeadlessRenderService:
    """Owns the lifecycle of one Chromium process per render request."""

    def __init__(
        self,
        registry: ThemeRegistry,
        settings: Optional[Settings] = None,
        playwright_factory: PlaywrightFactory = async_playwright,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self.playwright_factory = playwright_factory
        self.logger: Any = logger.bind(component="headless_render")
        self.font_css = local_font_css(self.settings.local_font_path)

    def parse_request(self, body: Any) -> HeadlessRenderRequest:
        return parse_request(body)

    def validate_request(self, request: HeadlessRenderRequest) -> None:
        """
        Reject requests that cannot be rendered.

        Raises:
            ValidationFailure: With a message naming the first problem found
        """
        if not request.template_id:
            raise ValidationFailure("Missing `templateId`")
        self.registry.require_headless(request.template_id)
        if not request.main_title:
            raise ValidationFailure("Missing `mainTitle`")
        if not MIN_CARDS <= len(request.cards) <= MAX_CARDS:
            raise ValidationFailure(f"`cards` must be an array with length {MIN_CARDS}..{MAX_CARDS}")
        for index, card in enumerate(request.cards):
            for field_name in ("title", "desc", "icon"):
                if not getattr(card, field_name):
                    raise ValidationFailure(f"cards[{index}].{field_name} is required")

    def build_document(self, request: HeadlessRenderRequest) -> str:
        theme = self.registry.require_headless(request.template_id)
        return build_static_document(
            theme,
            request.to_content(),
            font_css=self.font_css,
            settings=self.settings,
        )

    @asynccontextmanager
    async def launch(self, dpr: int) -> AsyncGenerator[Page, None]:
        """
        Fresh Chromium with a 1920x1080 context at the requested device scale.

        Context, browser, and driver are closed in reverse order of
        acquisition when the block exits, including on error.
        """
        launch_options: Dict[str, Any] = {
            "headless": self.settings.playwright_headless,
            "args": self.settings.chromium_args(),
        }
        if self.settings.chromium_executable_path:
            launch_options["executable_path"] = str(self.settings.chromium_executable_path)

        async with self.playwright_factory() as playwright:
            browser = await playwright.chromium.launch(**launch_options)
            try:
                context = await browser.new_context(
                    viewport={"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
                    device_scale_factor=dpr,
                )
                try:
                    yield await context.new_page()
                finally:
                    await context.close()
            finally:
                await browser.close()
                self.logger.debug("Browser closed")

    async def render(self, request: HeadlessRenderRequest) -> bytes:
        """
        Render a request to PNG bytes.

        Args:
            request: Parsed render request

        Returns:
            PNG bytes of exactly the 1920x1080 canvas at the request's dpr

        Raises:
            ValidationFailure: If the request is invalid (no process is launched)
            UpstreamTimeout: If the document did not load within the bound
            RenderFailed: For any other browser failure
        """
        self.validate_request(request)
        html = self.build_document(request)

        self.logger.info(
            "Headless render started",
            template_id=request.template_id,
            cards=len(request.cards),
            dpr=request.dpr,
            html_length=len(html),
        )

        try:
            async with self.launch(request.dpr) as page:
                try:
                    await page.set_content(
                        html, wait_until="load", timeout=self.settings.set_content_timeout_ms
                    )
                except PlaywrightTimeoutError as e:
                    raise UpstreamTimeout(
                        f"Document load exceeded {self.settings.set_content_timeout_ms}ms", cause=e
                    )
                await wait_for_fonts(page, self.settings.font_wait_timeout_ms)
                if self.settings.post_font_wait_ms > 0:
                    await asyncio.sleep(self.settings.post_font_wait_ms / 1000)
                png = await page.screenshot(
                    type="png",
                    clip={"x": 0, "y": 0, "width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
                )
        except CardRenderError:
            raise
        except PlaywrightTimeoutError as e:
            raise UpstreamTimeout(f"Headless render timed out: {e.message}", cause=e)
        except PlaywrightError as e:
            self.logger.error("Headless render failed", error=e.message)
            raise RenderFailed(e.message, cause=e)
        except Exception as e:
            self.logger.error("Headless render failed", error=str(e))
            raise RenderFailed(str(e), cause=e)

        self.logger.info("Headless render completed", file_size=len(png), dpr=request.dpr)
        return png

