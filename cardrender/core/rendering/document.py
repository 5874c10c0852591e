"""
Document Shell
==============

Standalone HTML documents wrapping theme markup: the downloadable export,
the static document loaded by the headless renderer, and the blank preview
page a live session starts from. External stylesheets and the Tailwind
runtime are linked only for themes that are not self-contained.
"""

import base64
from functools import lru_cache
from pathlib import Path
from typing import Optional

import jinja2

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.layout.scripts import build_layout_script
from cardrender.core.themes.base import Theme
from cardrender.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH, CardContent

logger = get_logger(__name__)

ROOT_ID = "card-root"
FONT_FAMILY = "CustomPreviewFont"

_TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(enabled_extensions=("html", "html.j2")),
    trim_blocks=True,
    lstrip_blocks=True,
)


@lru_cache(maxsize=4)
def local_font_css(font_path: Optional[Path]) -> Optional[str]:
    """
    ``@font-face`` rule embedding a local TTF as a data URL.

    Returns None when no path is configured or the file is missing; the
    document then renders with the theme's own font stack.
    """
    if font_path is None:
        return None
    try:
        payload = base64.b64encode(Path(font_path).read_bytes()).decode("ascii")
    except OSError as e:
        logger.warning("Local font unavailable", font_path=str(font_path), error=str(e))
        return None
    return (
        f"@font-face {{ font-family: '{FONT_FAMILY}'; "
        f"src: url('data:font/ttf;base64,{payload}') format('truetype'); }}\n"
        f".main-container {{ font-family: '{FONT_FAMILY}', system-ui, -apple-system, "
        f"sans-serif !important; }}"
    )


def build_document_shell(
    *,
    title: str,
    body_markup: Optional[str],
    include_external: bool,
    layout_script: str = "",
    font_css: Optional[str] = None,
    settings: Optional[Settings] = None,
    page_background: str = "transparent",
) -> str:
    """Render the fixed-canvas HTML shell around already-safe markup."""
    settings = settings or get_settings()
    return _env.get_template("document.html.j2").render(
        title=title,
        body_markup=body_markup,
        layout_script=layout_script,
        include_external=include_external,
        assets=settings,
        font_css=font_css,
        root_id=ROOT_ID,
        page_background=page_background,
        canvas_width=CANVAS_WIDTH,
        canvas_height=CANVAS_HEIGHT,
    )


def build_export_document(
    theme: Theme,
    content: CardContent,
    inner_markup: str,
    *,
    bottom_reserved_px: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Wrap serialized markup from a live target into a downloadable document.

    Args:
        theme: Theme that produced the markup
        content: Content the markup was rendered from
        inner_markup: Serialized subtree
        bottom_reserved_px: Footer reserve baked into the layout script
        settings: Settings override

    Returns:
        Standalone HTML text with the layout script inlined
    """
    settings = settings or get_settings()
    reserve = settings.bottom_reserved_px if bottom_reserved_px is None else bottom_reserved_px
    script = build_layout_script(content.card_count, reserve, theme.layout_for(content).title_config)
    return build_document_shell(
        title=content.main_title,
        body_markup=inner_markup,
        layout_script=script,
        include_external=not theme.self_contained,
        settings=settings,
    )


def build_static_document(
    theme: Theme,
    content: CardContent,
    *,
    bottom_reserved_px: Optional[int] = None,
    font_css: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Document built from ``render_static`` for renderers without a live session."""
    settings = settings or get_settings()
    reserve = settings.bottom_reserved_px if bottom_reserved_px is None else bottom_reserved_px
    script = build_layout_script(content.card_count, reserve, theme.layout_for(content).title_config)
    return build_document_shell(
        title=content.main_title,
        body_markup=theme.render_static(content),
        layout_script=script,
        include_external=not theme.self_contained,
        font_css=font_css,
        settings=settings,
    )


def build_preview_document(
    settings: Optional[Settings] = None, include_external: bool = True
) -> str:
    """Blank 1920x1080 page that live render targets are mounted into."""
    settings = settings or get_settings()
    return build_document_shell(
        title=settings.app_name,
        body_markup=None,
        include_external=include_external,
        font_css=local_font_css(settings.local_font_path),
        settings=settings,
    )
