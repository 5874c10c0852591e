"""
Test Configuration
==================

Pytest configuration with shared settings, themes, and sample content.
"""

import os
import tempfile

# Settings are read when the logging module is imported.
os.environ.setdefault("CARDRENDER_ENVIRONMENT", "testing")
os.environ.setdefault("CARDRENDER_LOG_LEVEL", "DEBUG")
os.environ.setdefault("CARDRENDER_STORAGE_PATH", tempfile.mkdtemp(prefix="cardrender_test_"))

import pytest

import cardrender.config.settings as settings_module
from cardrender.config.settings import Settings
from cardrender.core.themes.catalog import build_default_registry
from cardrender.core.themes.registry import ThemeRegistry
from cardrender.models.schemas import CardContent
from tests.utils.fakes import make_content


@pytest.fixture
def test_settings() -> Settings:
    """Fast settings: no settle delays, writes open."""
    return Settings(
        environment="testing",
        debug=True,
        layout_settle_ms=0,
        document_settle_ms=0,
        post_font_wait_ms=0,
        font_wait_timeout_ms=100,
        allow_unauthenticated_write=True,
        api_bearer_token=None,
        render_api_bearer_token=None,
    )


@pytest.fixture(autouse=True)
def override_settings(monkeypatch: pytest.MonkeyPatch, test_settings: Settings) -> Settings:
    """Route ``get_settings()`` to the test settings."""
    monkeypatch.setattr(settings_module, "settings", test_settings)
    return test_settings


@pytest.fixture
def registry() -> ThemeRegistry:
    return build_default_registry()


@pytest.fixture
def sample_content() -> CardContent:
    return make_content(3)


@pytest.fixture
def sample_request_body() -> dict:
    return {
        "templateId": "claudeStyle",
        "mainTitle": "  Release Notes  ",
        "cards": [
            {"title": "Faster", "desc": "Builds are <strong>2x</strong> faster", "icon": "Rocket-Launch"},
            {"title": "Safer", "desc": "<script>alert(1)</script>", "icon": "shield"},
        ],
        "dpr": 2,
    }
