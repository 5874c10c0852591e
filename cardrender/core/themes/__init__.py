"""
Themes
======

Theme protocol, the template-backed implementation, and the explicit registry.
"""

from cardrender.core.themes.base import TemplateTheme, Theme, ThemeColor
from cardrender.core.themes.catalog import build_default_registry
from cardrender.core.themes.registry import ThemeRegistry

__all__ = ["Theme", "TemplateTheme", "ThemeColor", "ThemeRegistry", "build_default_registry"]
