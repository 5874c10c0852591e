"""
Unit Tests for the Command Line Interface
=========================================

Paths that need no real browser.
"""

import json
from contextlib import asynccontextmanager
from functools import partial

from playwright.async_api import Error as PlaywrightError

from cardrender import cli
from cardrender.cli import build_parser, main
from cardrender.core.rendering.session import preview_session

from tests.utils.fakes import FakePlaywright


def _content_file(tmp_path):
    content = tmp_path / "content.json"
    content.write_text(json.dumps({"mainTitle": "T", "cards": [{"title": "A", "desc": "d", "icon": "bolt"}]}))
    return content


class TestCli:
    def test_themes(self, capsys):
        assert main(["themes"]) == 0
        out = capsys.readouterr().out
        assert "claudeStyle" in out
        assert "newsCard" in out
        assert "self-contained" in out

    def test_export_defaults(self):
        args = build_parser().parse_args(["export", "--theme", "claudeStyle", "--input", "content.json"])
        assert args.format == "png"
        assert args.out is None
        assert args.renderer is None

    def test_unknown_theme(self, tmp_path, capsys):
        content = tmp_path / "content.json"
        content.write_text(json.dumps({"mainTitle": "T", "cards": [{"title": "A", "desc": "", "icon": "bolt"}]}))

        assert main(["export", "--theme", "nope", "--input", str(content)]) == 1
        assert "Unknown templateId: nope" in capsys.readouterr().err

    def test_missing_input(self, tmp_path, capsys):
        assert main(["export", "--theme", "claudeStyle", "--input", str(tmp_path / "missing.json")]) == 2
        assert "Input not found" in capsys.readouterr().err

    def test_invalid_content(self, tmp_path, capsys):
        content = tmp_path / "content.json"
        content.write_text(json.dumps({"mainTitle": "T", "cards": []}))

        assert main(["export", "--theme", "claudeStyle", "--input", str(content)]) == 2
        assert "Invalid content" in capsys.readouterr().err

    def test_browser_launch_failure(self, tmp_path, capsys, monkeypatch):
        driver = FakePlaywright()
        driver.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")
        monkeypatch.setattr(cli, "preview_session", partial(preview_session, playwright_factory=driver))

        assert main(["export", "--theme", "claudeStyle", "--input", str(_content_file(tmp_path))]) == 1
        err = capsys.readouterr().err
        assert "❌ Export failed (RENDER_FAILED)" in err
        assert "Executable doesn't exist" in err

    def test_unclassified_browser_error(self, tmp_path, capsys, monkeypatch):
        @asynccontextmanager
        async def broken_session(*args, **kwargs):
            raise PlaywrightError("Target closed")
            yield

        monkeypatch.setattr(cli, "preview_session", broken_session)

        assert main(["export", "--theme", "claudeStyle", "--input", str(_content_file(tmp_path))]) == 1
        assert "❌ Browser failed: Target closed" in capsys.readouterr().err
