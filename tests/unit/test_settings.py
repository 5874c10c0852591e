"""
Unit Tests for Settings
=======================
"""

import pytest
from pydantic import ValidationError

from cardrender.config.settings import Settings


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CARDRENDER_PNG_RENDERER", "remote")
        monkeypatch.setenv("CARDRENDER_RENDER_API_BASE_URL", "https://render.example/api/")

        settings = Settings()
        assert settings.png_renderer == "remote"
        assert settings.render_api_base_url == "https://render.example/api"

    @pytest.mark.parametrize("raw,expected", [("9", 4.0), ("0", 1.0), ("nan", 2.0), ("1.5", 1.5)])
    def test_pixel_ratio_clamped(self, raw, expected):
        assert Settings(export_pixel_ratio=raw).export_pixel_ratio == expected

    def test_timeouts_clamped(self):
        settings = Settings(render_api_timeout_ms=10, set_content_timeout_ms=10**7)
        assert settings.render_api_timeout_ms == 1000
        assert settings.set_content_timeout_ms == 120000

    def test_allowed_origins_forms(self):
        assert Settings(allowed_origins="a.test, b.test").allowed_origins == ["a.test", "b.test"]
        assert Settings(allowed_origins='["x.test"]').allowed_origins == ["x.test"]

    def test_chromium_args(self):
        args = Settings(chromium_no_sandbox=True).chromium_args()
        assert "--no-sandbox" in args
        assert "--disable-dev-shm-usage" in args

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="staging")
