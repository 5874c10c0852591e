"""
Rendering Pipeline
==================

Document shell, live page helpers, artifact capture, headless rendering,
remote rendering, and export orchestration.
"""

from cardrender.core.rendering.capture import ArtifactCapturer, StrategyOutcome
from cardrender.core.rendering.exporter import ExportOrchestrator
from cardrender.core.rendering.headless import HeadlessRenderService, parse_request
from cardrender.core.rendering.remote import RenderApiClient
from cardrender.core.rendering.session import preview_session

__all__ = [
    "ArtifactCapturer",
    "StrategyOutcome",
    "ExportOrchestrator",
    "HeadlessRenderService",
    "parse_request",
    "RenderApiClient",
    "preview_session",
]
