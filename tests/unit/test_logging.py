"""
Unit Tests for Logging Configuration
====================================
"""

import structlog

from cardrender.config.logging import (
    add_service_context,
    bind_log_context,
    build_processors,
    clear_log_context,
    get_logging_config,
)
from cardrender.config.settings import Settings


class TestLoggingConfig:
    def test_testing_logs_to_console_only(self, test_settings):
        config = get_logging_config(test_settings)

        assert config["loggers"][""]["handlers"] == ["console"]
        assert config["loggers"]["cardrender"]["handlers"] == ["console"]
        assert config["handlers"]["console"]["formatter"] == "plain"
        assert config["loggers"]["playwright"]["level"] == "WARNING"

    def test_production_writes_json_files(self, tmp_path):
        settings = Settings(environment="production", storage_path=tmp_path, api_bearer_token="t")
        config = get_logging_config(settings)

        assert config["loggers"][""]["handlers"] == ["console", "file", "error_file"]
        assert config["formatters"]["json"]["()"] == "pythonjsonlogger.json.JsonFormatter"
        assert {h["formatter"] for h in config["handlers"].values()} == {"json"}
        assert config["handlers"]["file"]["filename"] == str(tmp_path / "logs" / "cardrender.log")

    def test_production_hands_fields_to_json_formatter(self, tmp_path):
        settings = Settings(environment="production", storage_path=tmp_path, api_bearer_token="t")
        assert build_processors(settings)[-1] is structlog.stdlib.render_to_log_kwargs

    def test_development_renders_to_console(self, test_settings):
        assert isinstance(build_processors(test_settings)[-1], structlog.dev.ConsoleRenderer)


class TestLogContext:
    def teardown_method(self):
        clear_log_context()

    def test_bound_fields_merge_into_events(self):
        bind_log_context(request_id="req-1", path="/api/render")

        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "Render"})

        assert event == {"event": "Render", "request_id": "req-1", "path": "/api/render"}

    def test_clear_drops_bound_fields(self):
        bind_log_context(request_id="req-1")
        clear_log_context()

        assert structlog.contextvars.get_contextvars() == {}

    def test_service_context(self, test_settings):
        event = add_service_context(None, "info", {"event": "x", "service": "override"})

        assert event["service"] == "override"
        assert event["environment"] == "testing"
        assert add_service_context(None, "info", {})["service"] == test_settings.app_name
