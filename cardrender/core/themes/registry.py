"""
Theme Registry
==============

Explicit mapping from theme id to theme. Built once at startup and handed by
reference to the orchestrator, the headless service, and the API.
"""

from typing import Dict, Iterator, List, Optional

from cardrender.config.logging import get_logger
from cardrender.core.errors import ValidationFailure
from cardrender.core.themes.base import Theme
from cardrender.models.schemas import ThemeSummary

logger = get_logger(__name__)


class ThemeRegistry:
    """Read-only after startup; lookups of unknown ids raise ``ValidationFailure``."""

    def __init__(self) -> None:
        self._themes: Dict[str, Theme] = {}

    def register(self, theme: Theme) -> None:
        if theme.id in self._themes:
            raise ValueError(f"Theme already registered: {theme.id}")
        self._themes[theme.id] = theme
        logger.debug("Theme registered", theme_id=theme.id, self_contained=theme.self_contained)

    def get(self, theme_id: str) -> Optional[Theme]:
        return self._themes.get(theme_id)

    def require(self, theme_id: str) -> Theme:
        """
        Look up a theme by id.

        Raises:
            ValidationFailure: If no theme has that id
        """
        theme = self._themes.get(theme_id)
        if theme is None:
            raise ValidationFailure(f"Unknown templateId: {theme_id}")
        return theme

    def require_headless(self, theme_id: str) -> Theme:
        theme = self.require(theme_id)
        if not theme.headless_renderable:
            raise ValidationFailure(f"Template not SSR-ready: {theme_id}")
        return theme

    def list_headless(self) -> List[Theme]:
        """Headless-renderable themes sorted by id."""
        return sorted(
            (theme for theme in self._themes.values() if theme.headless_renderable),
            key=lambda theme: theme.id,
        )

    def summaries(self, headless_only: bool = False) -> List[ThemeSummary]:
        themes = self.list_headless() if headless_only else sorted(self, key=lambda t: t.id)
        return [
            ThemeSummary(
                id=theme.id,
                name=theme.name,
                description=theme.description,
                self_contained=theme.self_contained,
                headless=theme.headless_renderable,
            )
            for theme in themes
        ]

    def __contains__(self, theme_id: object) -> bool:
        return theme_id in self._themes

    def __iter__(self) -> Iterator[Theme]:
        return iter(self._themes.values())

    def __len__(self) -> int:
        return len(self._themes)
