"""
Card Render
===========

Render structured card content (a main title plus 1-8 cards) into visual
artifacts: a live preview, a standalone HTML document, or a PNG/SVG image.

This package provides:
- Deterministic layout fitting shared by live pages and static documents
- Theme registry with Jinja2-based theme variants
- Multi-strategy image capture with Playwright and Pillow
- Isolated headless render service exposed through FastAPI
"""

__version__ = "1.0.0"
__author__ = "Card Render Team"
