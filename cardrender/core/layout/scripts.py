"""
Layout Script Lowering
======================

Lowers fit procedure records to dependency-free JavaScript for documents
that are loaded without a Python driver (downloaded HTML, headless render).
Each fragment runs once on load and again after fonts settle, the same
sequence the in-process interpreter follows.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import jinja2

from cardrender.core.layout.calculator import BOTTOM_RESERVED_PX, compute_title_config
from cardrender.core.layout.procedures import (
    LAYOUT_CHANGE_EVENT,
    RESERVE_DATA_KEY,
    BottomReserveProcedure,
    TitleFitProcedure,
    ViewportFitProcedure,
)
from cardrender.models.schemas import TitleConfig

FONT_WAIT_TIMEOUT_MS = 1500
FONT_RERUN_MS = 50

_TEMPLATE_DIR = Path(__file__).parent / "js"


@lru_cache(maxsize=1)
def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )


def _render(template_name: str, **context: object) -> str:
    template = _environment().get_template(template_name)
    return template.render(
        font_timeout_ms=FONT_WAIT_TIMEOUT_MS,
        rerun_ms=FONT_RERUN_MS,
        data_key=RESERVE_DATA_KEY,
        event_name=LAYOUT_CHANGE_EVENT,
        **context,
    )


def describe_title_fit_procedure(
    title_config: TitleConfig, procedure: Optional[TitleFitProcedure] = None
) -> str:
    """Script text that runs the title fit for the given bounds."""
    procedure = procedure or TitleFitProcedure.from_title_config(title_config)
    return _render("title_fit.js.j2", procedure=procedure)


def describe_viewport_fit_procedure(procedure: Optional[ViewportFitProcedure] = None) -> str:
    """Script text that shrinks the wrapper to the height budget and re-fits on layout changes."""
    return _render("viewport_fit.js.j2", procedure=procedure or ViewportFitProcedure())


def describe_bottom_reserve_procedure(reserve_px: int = BOTTOM_RESERVED_PX) -> str:
    """Script text that pads the container bottom and announces the layout change."""
    procedure = BottomReserveProcedure(reserve_px=max(0, int(round(reserve_px))))
    return _render("bottom_reserve.js.j2", procedure=procedure)


def build_layout_script(
    card_count: int,
    bottom_reserved_px: int = BOTTOM_RESERVED_PX,
    title_config: Optional[TitleConfig] = None,
) -> str:
    """
    Complete ``<script>`` element for a static document.

    The bottom reserve runs first so the viewport fit sees the final budget.

    Args:
        card_count: Number of cards rendered in the document
        bottom_reserved_px: Footer space kept clear below the content
        title_config: Title bounds when the theme overrides the standard ones

    Returns:
        Inline script element with no external references
    """
    title_config = title_config or compute_title_config(card_count)
    body = "".join(
        (
            describe_bottom_reserve_procedure(bottom_reserved_px),
            describe_title_fit_procedure(title_config),
            describe_viewport_fit_procedure(),
        )
    )
    return f"<script>{body}</script>"
