"""
Live Page Helpers
=================

Primitives for working against a live Playwright page: animation frames,
font readiness, settle delays, the offscreen ``RenderTarget`` an export
mounts its subtree into, and the ``LiveDocument`` adapter the fit
interpreter measures through.
"""

import asyncio
import uuid
from typing import Any, Optional, Sequence

from playwright.async_api import Locator, Page

from cardrender.config.logging import get_logger
from cardrender.core.layout.procedures import BottomReserveProcedure, RESERVE_DATA_KEY
from cardrender.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH

logger = get_logger(__name__)

FONT_WAIT_TIMEOUT_MS = 1500
FONT_GRACE_MS = 60
ICON_FONT_GRACE_MS = 40
ICON_FONT_FACES = ('24px "Material Icons"', '24px "Material Symbols Rounded"')
MIN_SETTLE_MS = 180
MAX_SETTLE_MS = 700
OFFSCREEN_LEFT_PX = -10000

_NEXT_FRAME_JS = "() => new Promise((resolve) => requestAnimationFrame(() => resolve(null)))"

_FONTS_READY_JS = """
(timeoutMs) => {
  if (!document.fonts || !document.fonts.ready) return Promise.resolve(false);
  return Promise.race([
    document.fonts.ready.then(() => true),
    new Promise((resolve) => setTimeout(() => resolve(false), timeoutMs)),
  ]);
}
"""

_ICON_FONTS_JS = """
async (faces) => {
  if (!document.fonts || typeof document.fonts.load !== 'function') return 0;
  const results = await Promise.allSettled(faces.map((face) => document.fonts.load(face)));
  return results.filter((r) => r.status === 'fulfilled').length;
}
"""

_MOUNT_JS = """
({ id, html, width, height, left }) => {
  const container = document.createElement('div');
  container.id = id;
  container.setAttribute('aria-hidden', 'true');
  Object.assign(container.style, {
    position: 'fixed',
    left: left + 'px',
    top: '0px',
    width: width + 'px',
    height: height + 'px',
    overflow: 'hidden',
    pointerEvents: 'none',
  });
  container.innerHTML = html;
  document.body.appendChild(container);
}
"""

_UNMOUNT_JS = """
(id) => {
  const container = document.getElementById(id);
  if (container && container.parentNode) container.parentNode.removeChild(container);
  return !!container;
}
"""

_FIND_FIRST_JS = """
const host = document.querySelector(root);
let el = null;
if (host) {
  for (const selector of selectors) {
    el = host.querySelector(selector);
    if (el) break;
  }
}
"""

_MEASURE_WIDTH_JS = "({ root, selectors }) => {" + _FIND_FIRST_JS + "return el ? el.scrollWidth : null; }"
_SET_FONT_SIZE_JS = (
    "({ root, selectors, size }) => {" + _FIND_FIRST_JS + "if (el) el.style.fontSize = size + 'px'; }"
)
_MEASURE_HEIGHT_JS = "({ root, selectors }) => {" + _FIND_FIRST_JS + "return el ? el.scrollHeight : null; }"
_SET_TRANSFORM_JS = (
    "({ root, selectors, transform }) => {" + _FIND_FIRST_JS + "if (el) el.style.transform = transform; }"
)

_READ_RESERVE_JS = """
({ root, key }) => {
  const host = document.querySelector(root);
  if (!host) return 0;
  const value = parseFloat(host.dataset[key] || '0');
  return isFinite(value) && value > 0 ? value : 0;
}
"""

_APPLY_RESERVE_JS = """
({ root, key, selector, reserve, eventName }) => {
  const host = document.querySelector(root);
  if (!host) return false;
  host.dataset[key] = String(reserve);
  const target = host.querySelector(selector);
  if (!target) return false;
  let basePb = parseFloat(target.dataset.p2vBasePaddingBottom || '');
  if (!isFinite(basePb)) {
    const prev = parseFloat(target.dataset.bottomReserved || '0') || 0;
    const current = parseFloat(getComputedStyle(target).paddingBottom) || 0;
    basePb = current - prev;
    if (!isFinite(basePb) || basePb < 0) basePb = current;
  }
  target.style.paddingBottom = (basePb + reserve) + 'px';
  target.style.boxSizing = 'border-box';
  target.dataset.p2vBasePaddingBottom = String(basePb);
  target.dataset.bottomReserved = String(reserve);
  window.dispatchEvent(new CustomEvent(eventName));
  return true;
}
"""


def clamp_settle_ms(settle_ms: float) -> int:
    """Final settle delay, kept within [180, 700] ms."""
    try:
        value = float(settle_ms)
    except (TypeError, ValueError):
        value = MIN_SETTLE_MS
    return int(round(min(MAX_SETTLE_MS, max(MIN_SETTLE_MS, value))))


async def next_frame(page: Page) -> None:
    await page.evaluate(_NEXT_FRAME_JS)


async def wait_for_fonts(page: Page, timeout_ms: int = FONT_WAIT_TIMEOUT_MS) -> bool:
    """
    Wait for ``document.fonts.ready`` raced against a timeout.

    Returns whether fonts reported ready; the caller proceeds either way.
    """
    ready = bool(await page.evaluate(_FONTS_READY_JS, timeout_ms))
    if not ready:
        logger.debug("Font wait timed out", timeout_ms=timeout_ms)
    return ready


async def ensure_icon_fonts_ready(page: Page) -> int:
    """Load the icon font faces with allSettled semantics, then a short grace."""
    loaded = int(await page.evaluate(_ICON_FONTS_JS, list(ICON_FONT_FACES)) or 0)
    await asyncio.sleep(ICON_FONT_GRACE_MS / 1000)
    return loaded


async def wait_for_final_layout_settle(page: Page, settle_ms: float) -> None:
    """One frame, a clamped settle delay, then one more frame."""
    await next_frame(page)
    await asyncio.sleep(clamp_settle_ms(settle_ms) / 1000)
    await next_frame(page)


class PlaywrightLiveDocument:
    """``LiveDocument`` over a subtree of a Playwright page, addressed by a root selector."""

    def __init__(self, page: Page, root_selector: str):
        self.page = page
        self.root_selector = root_selector

    async def measure_title_width(self, selectors: Sequence[str]) -> Optional[float]:
        return await self.page.evaluate(
            _MEASURE_WIDTH_JS, {"root": self.root_selector, "selectors": list(selectors)}
        )

    async def set_title_font_size(self, selectors: Sequence[str], size_px: int) -> None:
        await self.page.evaluate(
            _SET_FONT_SIZE_JS,
            {"root": self.root_selector, "selectors": list(selectors), "size": size_px},
        )

    async def measure_content_height(self, selectors: Sequence[str]) -> Optional[float]:
        return await self.page.evaluate(
            _MEASURE_HEIGHT_JS, {"root": self.root_selector, "selectors": list(selectors)}
        )

    async def apply_scale(self, selectors: Sequence[str], scale: float) -> None:
        await self.page.evaluate(
            _SET_TRANSFORM_JS,
            {
                "root": self.root_selector,
                "selectors": list(selectors),
                "transform": f"scale({scale})",
            },
        )

    async def clear_scale(self, selectors: Sequence[str]) -> None:
        await self.page.evaluate(
            _SET_TRANSFORM_JS,
            {"root": self.root_selector, "selectors": list(selectors), "transform": ""},
        )

    async def read_bottom_reserve(self) -> float:
        value = await self.page.evaluate(
            _READ_RESERVE_JS, {"root": self.root_selector, "key": RESERVE_DATA_KEY}
        )
        return float(value or 0)

    async def apply_bottom_reserve(self, procedure: BottomReserveProcedure) -> None:
        await self.page.evaluate(
            _APPLY_RESERVE_JS,
            {
                "root": self.root_selector,
                "key": procedure.data_key,
                "selector": procedure.selector,
                "reserve": procedure.reserve_px,
                "eventName": procedure.event_name,
            },
        )


class RenderTarget:
    """
    Offscreen container holding one export's subtree.

    Used as an async context manager: the container is appended to the page
    on entry and removed on exit, whatever happened in between. Each target
    owns a unique element id, so concurrent exports on the same page never
    touch each other's nodes.
    """

    def __init__(
        self,
        page: Page,
        markup: str,
        width: int = CANVAS_WIDTH,
        height: int = CANVAS_HEIGHT,
    ):
        self.page = page
        self.markup = markup
        self.width = width
        self.height = height
        self.container_id = f"cardrender-target-{uuid.uuid4().hex}"
        self.mounted = False
        self.logger: Any = logger.bind(component="render_target", target=self.container_id)

    @property
    def selector(self) -> str:
        return f"#{self.container_id}"

    @property
    def locator(self) -> Locator:
        return self.page.locator(self.selector)

    def live_document(self) -> PlaywrightLiveDocument:
        return PlaywrightLiveDocument(self.page, self.selector)

    async def mount(self) -> "RenderTarget":
        await self.page.evaluate(
            _MOUNT_JS,
            {
                "id": self.container_id,
                "html": self.markup,
                "width": self.width,
                "height": self.height,
                "left": OFFSCREEN_LEFT_PX,
            },
        )
        self.mounted = True
        self.logger.debug("Render target mounted", width=self.width, height=self.height)
        return self

    async def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        try:
            await self.page.evaluate(_UNMOUNT_JS, self.container_id)
        except Exception as e:
            # The page may already be closed; nothing is left to remove then.
            self.logger.warning("Render target removal failed", error=str(e))
        else:
            self.logger.debug("Render target removed")

    async def inner_html(self) -> str:
        return await self.locator.inner_html()

    async def __aenter__(self) -> "RenderTarget":
        return await self.mount()

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.unmount()
