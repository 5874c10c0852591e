"""
Theme Capability
================

A theme turns validated card content into presentational markup. Every
variant is a ``TemplateTheme`` configured with a Jinja2 template, a palette,
and a layout function; callers only depend on the ``Theme`` protocol.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import jinja2

from cardrender.config.logging import get_logger
from cardrender.core.layout.calculator import compute_layout, compute_title_config
from cardrender.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH, CardContent, LayoutPlan

logger = get_logger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

LayoutFunction = Callable[[int], LayoutPlan]


class Theme(Protocol):
    """What the pipeline needs from a visual presentation."""

    id: str
    name: str
    description: Optional[str]
    self_contained: bool
    headless_renderable: bool

    def render(self, content: CardContent, scale: float = 1.0) -> str:
        ...

    def layout_for(self, content: CardContent) -> LayoutPlan:
        ...

    def render_static(self, content: CardContent) -> str:
        ...


@dataclass(frozen=True)
class ThemeColor:
    bg: str
    on_bg: str
    icon: str


def _create_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=jinja2.select_autoescape(enabled_extensions=("html", "html.j2")),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )

    def initial(value: str) -> str:
        """First letter of an icon token, used where no icon font is loaded."""
        token = value.split(",")[0].strip().replace("_", " ")
        return token[:1].upper() if token else "?"

    env.filters["initial"] = initial
    return env


_ENV = _create_environment()


@dataclass(frozen=True)
class TemplateTheme:
    """
    Theme variant backed by a Jinja2 template.

    Templates receive ``content``, ``layout`` (a LayoutPlan), ``cards_with_colors``
    (each card paired with a palette entry, cycled), ``scale``, and the canvas
    size. Descriptions arrive already sanitized and are emitted verbatim.
    """

    id: str
    name: str
    template_name: str
    palette: Tuple[ThemeColor, ...]
    description: Optional[str] = None
    layout_function: LayoutFunction = compute_layout
    self_contained: bool = False
    headless_renderable: bool = True
    title_overrides: Optional[Dict[str, int]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def layout_for(self, content: CardContent) -> LayoutPlan:
        plan = self.layout_function(content.card_count)
        if not self.title_overrides:
            return plan
        title_config = compute_title_config(content.card_count, self.title_overrides)
        return plan.model_copy(update={"title_config": title_config})

    def card_colors(self, content: CardContent) -> List[ThemeColor]:
        return [self.palette[i % len(self.palette)] for i in range(content.card_count)]

    def render(self, content: CardContent, scale: float = 1.0) -> str:
        """
        Markup fragment for mounting in a live page.

        Args:
            content: Validated card content
            scale: Uniform scale applied to the 1920x1080 frame

        Returns:
            HTML fragment rooted at a fixed-size frame
        """
        template = _ENV.get_template(self.template_name)
        markup = template.render(
            content=content,
            layout=self.layout_for(content),
            cards_with_colors=list(zip(content.cards, self.card_colors(content))),
            scale=scale,
            canvas_width=CANVAS_WIDTH,
            canvas_height=CANVAS_HEIGHT,
            theme=self,
            **self.extra,
        )
        logger.debug("Theme rendered", theme_id=self.id, cards=content.card_count, scale=scale)
        return markup

    def render_static(self, content: CardContent) -> str:
        """Markup for a static document: the same tree at scale 1."""
        return self.render(content, scale=1.0)
