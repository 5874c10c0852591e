"""
Artifact Capturer
=================

Converts a mounted subtree of a live page into image bytes. Capture runs an
ordered chain of strategies; each one reports a ``StrategyOutcome`` instead
of raising, and the first success wins. When every strategy fails the call
raises ``CaptureFailed`` with the last underlying message and no bytes.
"""

import asyncio
import base64
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.errors import CaptureFailed
from cardrender.core.rendering.live import (
    FONT_GRACE_MS,
    ensure_icon_fonts_ready,
    wait_for_final_layout_settle,
    wait_for_fonts,
)
from cardrender.models.schemas import CaptureOptions, ExportFormat

logger = get_logger(__name__)

VECTOR_RASTER_BACKGROUND = "#ffffff"
PNG_MEDIA_TYPE = "image/png"
SVG_MEDIA_TYPE = "image/svg+xml"

_SERIALIZE_SVG_JS = r"""
async (el, { width, height, embedFonts }) => {
  const inlineStyles = (from, to) => {
    const computed = getComputedStyle(from);
    let text = '';
    for (let i = 0; i < computed.length; i++) {
      const name = computed[i];
      text += name + ':' + computed.getPropertyValue(name) + ';';
    }
    to.setAttribute('style', text);
    for (let i = 0; i < from.children.length; i++) {
      if (to.children[i]) inlineStyles(from.children[i], to.children[i]);
    }
  };

  const toDataUrl = async (url) => {
    const res = await fetch(url);
    if (!res.ok) throw new Error('Font fetch failed: ' + res.status);
    const blob = await res.blob();
    return await new Promise((resolve, reject) => {
      const reader = new FileReader();
      reader.onload = () => resolve(reader.result);
      reader.onerror = () => reject(reader.error);
      reader.readAsDataURL(blob);
    });
  };

  const clone = el.cloneNode(true);
  inlineStyles(el, clone);
  clone.style.position = 'relative';
  clone.style.left = '0px';
  clone.style.top = '0px';
  clone.querySelectorAll('script').forEach((node) => node.remove());

  let fontCss = '';
  if (embedFonts) {
    for (const sheet of Array.from(document.styleSheets)) {
      let rules;
      try { rules = sheet.cssRules; } catch (e) { continue; }
      for (const rule of Array.from(rules || [])) {
        if (rule.type !== CSSRule.FONT_FACE_RULE) continue;
        let css = rule.cssText;
        const tokens = css.match(/url\([^)]+\)/g) || [];
        for (const token of tokens) {
          const raw = token.slice(4, -1).trim().replace(/^["']|["']$/g, '');
          if (raw.startsWith('data:')) continue;
          try {
            const absolute = new URL(raw, sheet.href || location.href).href;
            css = css.replace(token, 'url("' + await toDataUrl(absolute) + '")');
          } catch (e) {}
        }
        fontCss += css + '\n';
      }
    }
  }

  const escapeXml = (s) => s.replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;');
  const body = new XMLSerializer().serializeToString(clone);
  const style = fontCss ? '<style>' + escapeXml(fontCss) + '</style>' : '';
  return '<svg xmlns="http://www.w3.org/2000/svg" width="' + width + '" height="' + height + '" ' +
    'viewBox="0 0 ' + width + ' ' + height + '">' +
    '<foreignObject x="0" y="0" width="100%" height="100%">' +
    '<div xmlns="http://www.w3.org/1999/xhtml" style="width:' + width + 'px;height:' + height + 'px;overflow:hidden">' +
    style + body + '</div></foreignObject></svg>';
}
"""

_RASTERIZE_SVG_JS = r"""
async ({ svg, width, height, pixelRatio, background }) => {
  const canvas = document.createElement('canvas');
  try {
    canvas.width = Math.max(1, Math.round(width * pixelRatio));
    canvas.height = Math.max(1, Math.round(height * pixelRatio));
    const ctx = canvas.getContext('2d');
    if (!ctx) throw new Error('Canvas 2D context unavailable');
    ctx.fillStyle = background;
    ctx.fillRect(0, 0, canvas.width, canvas.height);
    const img = new Image();
    await new Promise((resolve, reject) => {
      img.onload = () => resolve(null);
      img.onerror = () => reject(new Error('SVG image failed to load'));
      img.src = 'data:image/svg+xml;charset=utf-8,' + encodeURIComponent(svg);
    });
    ctx.drawImage(img, 0, 0, canvas.width, canvas.height);
    const dataUrl = canvas.toDataURL('image/png');
    return dataUrl.slice(dataUrl.indexOf(',') + 1);
  } finally {
    canvas.width = 0;
    canvas.height = 0;
  }
}
"""

_BRING_ONSCREEN_JS = """
(el) => {
  const previous = { left: el.style.left, zIndex: el.style.zIndex, moved: false };
  if (el.getBoundingClientRect().left < 0) {
    el.style.left = '0px';
    el.style.zIndex = '2147483647';
    previous.moved = true;
  }
  return previous;
}
"""

_RESTORE_POSITION_JS = """
(el, previous) => {
  if (!previous || !previous.moved) return;
  el.style.left = previous.left;
  el.style.zIndex = previous.zIndex;
}
"""


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of one strategy attempt: bytes on success, an error message otherwise."""

    strategy: str
    data: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.data)


@dataclass(frozen=True)
class CaptureResult:
    data: bytes
    strategy: str
    media_type: str
    degraded: bool = False
    failures: Tuple[StrategyOutcome, ...] = field(default_factory=tuple)


def output_size(options: CaptureOptions) -> Tuple[int, int]:
    return (
        max(1, int(round(options.width * options.pixel_ratio))),
        max(1, int(round(options.height * options.pixel_ratio))),
    )


class CaptureStrategy(ABC):
    """One way of turning a subtree into bytes."""

    name: str = "strategy"

    async def attempt(self, target: Locator, options: CaptureOptions) -> StrategyOutcome:
        """Run the strategy; failures come back as an outcome, never as an exception."""
        try:
            data = await self._capture(target, options)
        except Exception as e:
            return StrategyOutcome(strategy=self.name, error=f"{type(e).__name__}: {e}")
        if not data:
            return StrategyOutcome(strategy=self.name, error="Strategy produced no bytes")
        return StrategyOutcome(strategy=self.name, data=data)

    @abstractmethod
    async def _capture(self, target: Locator, options: CaptureOptions) -> bytes:
        pass


class VectorStrategy(CaptureStrategy):
    """Serialize the subtree to SVG with computed styles and fonts inlined."""

    name = "vector"

    def __init__(self, embed_fonts: bool = True):
        self.embed_fonts = embed_fonts

    async def serialize(self, target: Locator, options: CaptureOptions) -> str:
        svg = await target.evaluate(
            _SERIALIZE_SVG_JS,
            {"width": options.width, "height": options.height, "embedFonts": self.embed_fonts},
        )
        if not isinstance(svg, str) or not svg.startswith("<svg"):
            raise ValueError("Vector serialization returned no markup")
        return svg

    async def _capture(self, target: Locator, options: CaptureOptions) -> bytes:
        return (await self.serialize(target, options)).encode("utf-8")


class VectorRasterStrategy(VectorStrategy):
    """
    Vector-capture at scale 1, then rasterize on an in-page canvas.

    The canvas is filled before drawing, white when no background color was
    requested. Results smaller than ``min_png_bytes`` are reported as
    failures so the chain moves on.
    """

    name = "vector_raster"

    def __init__(self, min_png_bytes: int = 1000, embed_fonts: bool = True):
        super().__init__(embed_fonts=embed_fonts)
        self.min_png_bytes = min_png_bytes

    async def _capture(self, target: Locator, options: CaptureOptions) -> bytes:
        svg = await self.serialize(target, options)
        encoded = await target.page.evaluate(
            _RASTERIZE_SVG_JS,
            {
                "svg": svg,
                "width": options.width,
                "height": options.height,
                "pixelRatio": options.pixel_ratio,
                "background": options.background_color or VECTOR_RASTER_BACKGROUND,
            },
        )
        data = base64.b64decode(encoded or "")
        if len(data) < self.min_png_bytes:
            raise ValueError(
                f"Rasterized PNG is {len(data)} bytes, below the {self.min_png_bytes} byte threshold"
            )
        return data


class DirectRasterStrategy(CaptureStrategy):
    """
    Element screenshot composited with Pillow.

    The screenshot is resampled to the requested pixel ratio when the page's
    device scale differs, then laid over the background color. Transparency
    is kept only when no background color was requested.
    """

    name = "direct_raster"

    async def _capture(self, target: Locator, options: CaptureOptions) -> bytes:
        previous = await target.evaluate(_BRING_ONSCREEN_JS)
        try:
            raw = await target.screenshot(
                type="png",
                omit_background=options.background_color is None,
                animations="disabled",
                scale="device",
            )
        finally:
            await target.evaluate(_RESTORE_POSITION_JS, previous)
        return compose_png(raw, output_size(options), options.background_color)


def _parse_color(color: Optional[str]) -> Optional[Tuple[int, ...]]:
    if not color:
        return None
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        logger.warning("Unparseable background color, keeping transparency", color=color)
        return None
    return rgb if len(rgb) == 4 else (*rgb, 255)


def compose_png(raw: bytes, size: Tuple[int, int], background_color: Optional[str]) -> bytes:
    """
    Resize a screenshot to ``size`` and lay it over a background color.

    Args:
        raw: PNG bytes from the browser
        size: Output size in device pixels
        background_color: CSS color, or None to keep transparency

    Returns:
        PNG bytes
    """
    fill = _parse_color(background_color)
    output = io.BytesIO()
    with Image.open(io.BytesIO(raw)) as source:
        image = source.convert("RGBA")
        try:
            if image.size != size:
                resized = image.resize(size, Image.Resampling.LANCZOS)
                image.close()
                image = resized
            if fill is not None:
                composed = Image.new("RGBA", size, fill)
                composed.alpha_composite(image)
                image.close()
                image = composed
            image.save(output, format="PNG", optimize=True)
        finally:
            image.close()
    return output.getvalue()


class ArtifactCapturer:
    """Waits for the page to settle, then runs the strategy chain for the requested format."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        png_strategies: Optional[Sequence[CaptureStrategy]] = None,
        svg_strategies: Optional[Sequence[CaptureStrategy]] = None,
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="artifact_capturer")
        self.png_strategies: List[CaptureStrategy] = list(
            png_strategies
            if png_strategies is not None
            else (
                VectorRasterStrategy(min_png_bytes=self.settings.capture_min_png_bytes),
                DirectRasterStrategy(),
            )
        )
        self.svg_strategies: List[CaptureStrategy] = list(
            svg_strategies if svg_strategies is not None else (VectorStrategy(),)
        )

    def strategies_for(self, fmt: ExportFormat) -> List[CaptureStrategy]:
        return self.png_strategies if fmt == ExportFormat.PNG else self.svg_strategies

    async def prepare(self, target: Locator, options: CaptureOptions) -> None:
        """Fonts, icon fonts, then the final layout settle, in that order."""
        page = target.page
        await wait_for_fonts(page, self.settings.font_wait_timeout_ms)
        await asyncio.sleep(FONT_GRACE_MS / 1000)
        await ensure_icon_fonts_ready(page)
        await wait_for_final_layout_settle(page, options.settle_ms)

    async def capture_artifact(self, target: Locator, options: CaptureOptions) -> CaptureResult:
        """
        Capture the subtree and report which strategy produced the bytes.

        Args:
            target: Locator of the realized subtree
            options: Capture options

        Returns:
            CaptureResult of the first strategy that succeeded

        Raises:
            CaptureFailed: If the page failed while settling, or every strategy failed
        """
        try:
            await self.prepare(target, options)
        except PlaywrightError as e:
            self.logger.warning("Capture preparation failed", error=str(e))
            raise CaptureFailed(f"Capture failed: {e}", cause=e)

        failures: List[StrategyOutcome] = []
        for strategy in self.strategies_for(options.format):
            outcome = await strategy.attempt(target, options)
            if outcome.ok and outcome.data is not None:
                degraded = bool(failures)
                if degraded:
                    self.logger.warning(
                        "Capture degraded",
                        strategy=outcome.strategy,
                        failed=[f.strategy for f in failures],
                        last_error=failures[-1].error,
                    )
                self.logger.info(
                    "Capture completed",
                    strategy=outcome.strategy,
                    format=options.format.value,
                    file_size=len(outcome.data),
                )
                return CaptureResult(
                    data=outcome.data,
                    strategy=outcome.strategy,
                    media_type=PNG_MEDIA_TYPE if options.format == ExportFormat.PNG else SVG_MEDIA_TYPE,
                    degraded=degraded,
                    failures=tuple(failures),
                )
            self.logger.warning("Capture strategy failed", strategy=outcome.strategy, error=outcome.error)
            failures.append(outcome)

        last_error = failures[-1].error if failures else "No capture strategy configured"
        raise CaptureFailed(f"Capture failed: {last_error}")

    async def capture(self, target: Locator, options: CaptureOptions) -> bytes:
        return (await self.capture_artifact(target, options)).data
