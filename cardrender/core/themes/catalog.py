"""
Built-in Themes
===============

The variants shipped with the package and the factory that registers them.
"""

from cardrender.core.layout.calculator import (
    compute_layout,
    compute_news_card_layout,
    compute_terminal_layout,
)
from cardrender.core.themes.base import TemplateTheme, ThemeColor
from cardrender.core.themes.registry import ThemeRegistry

CLAUDE_STYLE = TemplateTheme(
    id="claudeStyle",
    name="Claude Style",
    description="Warm off-white canvas with white rounded cards and accent titles",
    template_name="claude_style.html.j2",
    palette=(
        ThemeColor(bg="#f0eee6", on_bg="#4a403a", icon="#c96442"),
        ThemeColor(bg="#f0eee6", on_bg="#4a403a", icon="#e09f3e"),
        ThemeColor(bg="#f0eee6", on_bg="#4a403a", icon="#335c67"),
        ThemeColor(bg="#f0eee6", on_bg="#4a403a", icon="#9e2a2b"),
    ),
    layout_function=compute_layout,
    self_contained=True,
)

NEWS_CARD = TemplateTheme(
    id="newsCard",
    name="News Card",
    description="Bold outlined title over heavy-bordered cards with colored drop shadows",
    template_name="news_card.html.j2",
    palette=(
        ThemeColor(bg="#ffffff", on_bg="#000000", icon="#38bdf8"),
        ThemeColor(bg="#ffffff", on_bg="#000000", icon="#f472b6"),
        ThemeColor(bg="#ffffff", on_bg="#000000", icon="#84cc16"),
        ThemeColor(bg="#ffffff", on_bg="#000000", icon="#a78bfa"),
        ThemeColor(bg="#ffffff", on_bg="#000000", icon="#fbbf24"),
    ),
    layout_function=compute_news_card_layout,
    title_overrides={"initial_font_size": 90, "min_font_size": 40},
    self_contained=False,
)

TERMINAL_CLI = TemplateTheme(
    id="terminalCli",
    name="Terminal CLI",
    description="Green-on-black terminal session with bracketed icon tokens",
    template_name="terminal_cli.html.j2",
    palette=(
        ThemeColor(bg="#0a0a0a", on_bg="#00ff00", icon="#00ff00"),
        ThemeColor(bg="#0a0a0a", on_bg="#66ff66", icon="#00ff00"),
    ),
    layout_function=compute_terminal_layout,
    self_contained=True,
)

BUILTIN_THEMES = (CLAUDE_STYLE, NEWS_CARD, TERMINAL_CLI)


def build_default_registry() -> ThemeRegistry:
    """Registry holding every built-in theme."""
    registry = ThemeRegistry()
    for theme in BUILTIN_THEMES:
        registry.register(theme)
    return registry
