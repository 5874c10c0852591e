"""
Unit Tests for the Export Orchestrator
======================================

Remote-first PNG with local fallback, render target lifecycle, and the
document export path, all against a mocked page.
"""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from cardrender.core.errors import CaptureFailed, RemoteRenderError, ValidationFailure
from cardrender.core.rendering.capture import CaptureResult
from cardrender.core.rendering.exporter import ExportOrchestrator, export_filename, source_geometry
from cardrender.models.schemas import ExportFormat, ExportJob, PngRenderer

from tests.utils.fakes import FakeLiveDocument, PlainTheme, make_fake_page


def _unmount_calls(page: MagicMock) -> int:
    return sum(1 for call in page.evaluate.call_args_list if "removeChild" in call.args[0])


def _mount_calls(page: MagicMock) -> int:
    return sum(1 for call in page.evaluate.call_args_list if "appendChild" in call.args[0])


@pytest.fixture
def events():
    return []


@pytest.fixture
def capturer(events):
    fake = MagicMock()

    async def capture_artifact(target, options):
        events.append("local")
        return CaptureResult(data=b"local-png", strategy="direct_raster", media_type="image/png", degraded=True)

    fake.capture_artifact = AsyncMock(side_effect=capture_artifact)
    return fake


@pytest.fixture
def remote(events):
    fake = MagicMock()

    async def render_png(template_id, content, dpr=1):
        events.append("remote")
        return b"remote-png"

    fake.render_png = AsyncMock(side_effect=render_png)
    return fake


@pytest.fixture
def orchestrator(registry, test_settings, capturer, remote):
    return ExportOrchestrator(registry, settings=test_settings, capturer=capturer, remote_client=remote)


class TestHelpers:
    def test_export_filename(self):
        assert export_filename("newsCard", ExportFormat.PNG, now_ms=1700000000000) == "newsCard-1700000000000.png"
        assert re.fullmatch(r"claudeStyle-\d+\.svg", export_filename("claudeStyle", ExportFormat.SVG))

    def test_source_geometry(self):
        assert source_geometry(960, 2) == (960, 540, 4.0)
        assert source_geometry(1920, 2) == (1920, 1080, 2.0)
        # Render scale is clamped to 1..8
        assert source_geometry(3840, 1)[2] == 1.0


class TestImageExport:
    @pytest.mark.asyncio
    async def test_remote_success_skips_local(self, orchestrator, sample_content, capturer, remote):
        page = make_fake_page()
        job = ExportJob(renderer=PngRenderer.REMOTE, pixel_ratio=2)

        result = await orchestrator.export_as_image(page, "claudeStyle", sample_content, job)

        assert result.data == b"remote-png"
        assert result.backend == "remote"
        assert result.media_type == "image/png"
        assert result.filename.startswith("claudeStyle-")
        assert remote.render_png.call_args.kwargs["dpr"] == 2
        assert capturer.capture_artifact.await_count == 0
        assert _mount_calls(page) == 0

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_after_remote_finished(
        self, orchestrator, sample_content, remote, events
    ):
        page = make_fake_page()

        async def failing(template_id, content, dpr=1):
            events.append("remote")
            raise RemoteRenderError("HTTP 502")

        remote.render_png.side_effect = failing
        job = ExportJob(renderer=PngRenderer.REMOTE, pixel_ratio=1)

        result = await orchestrator.export_as_image(page, "claudeStyle", sample_content, job)

        assert events == ["remote", "local"]
        assert result.data == b"local-png"
        assert result.backend == "direct_raster"
        assert remote.render_png.call_args.kwargs["dpr"] == 1

    @pytest.mark.asyncio
    async def test_local_renderer_mounts_and_removes_target(self, orchestrator, sample_content, capturer, remote):
        page = make_fake_page()
        job = ExportJob(renderer=PngRenderer.LOCAL, pixel_ratio=3, background_color="#ffffff", template_id="custom")

        result = await orchestrator.export_as_image(page, "newsCard", sample_content, job)

        assert remote.render_png.await_count == 0
        assert result.filename.startswith("custom-")
        assert _mount_calls(page) == 1
        assert _unmount_calls(page) == 1
        options = capturer.capture_artifact.call_args.args[1]
        assert (options.width, options.height) == (1920, 1080)
        assert options.pixel_ratio == 3
        assert options.background_color == "#ffffff"

    @pytest.mark.asyncio
    async def test_svg_never_uses_remote(self, orchestrator, sample_content, capturer, remote):
        page = make_fake_page()
        capturer.capture_artifact.side_effect = None
        capturer.capture_artifact.return_value = CaptureResult(
            data=b"<svg/>", strategy="vector", media_type="image/svg+xml"
        )
        job = ExportJob(renderer=PngRenderer.REMOTE, format=ExportFormat.SVG)

        result = await orchestrator.export_as_image(page, "claudeStyle", sample_content, job)

        assert remote.render_png.await_count == 0
        assert result.media_type == "image/svg+xml"
        assert result.filename.endswith(".svg")

    @pytest.mark.asyncio
    async def test_capture_failure_propagates_and_target_is_removed(self, orchestrator, sample_content, capturer):
        page = make_fake_page()
        capturer.capture_artifact.side_effect = CaptureFailed("Capture failed: boom")

        with pytest.raises(CaptureFailed, match="boom"):
            await orchestrator.export_as_image(page, "claudeStyle", sample_content, ExportJob(renderer=PngRenderer.LOCAL))
        assert _unmount_calls(page) == 1

    @pytest.mark.asyncio
    async def test_mounted_source_is_captured_in_place(self, orchestrator, sample_content, capturer):
        page = make_fake_page()
        source = MagicMock()
        source.bounding_box = AsyncMock(return_value={"x": 0, "y": 0, "width": 960, "height": 540})

        await orchestrator.export_as_image(
            page, "claudeStyle", sample_content, ExportJob(renderer=PngRenderer.LOCAL, pixel_ratio=2), source=source
        )

        target, options = capturer.capture_artifact.call_args.args
        assert target is source
        assert (options.width, options.height, options.pixel_ratio) == (960, 540, 4.0)
        assert _mount_calls(page) == 0

    @pytest.mark.asyncio
    async def test_unknown_theme(self, orchestrator, sample_content):
        with pytest.raises(ValidationFailure):
            await orchestrator.export_as_image(make_fake_page(), "nope", sample_content)


class TestDocumentExport:
    @pytest.mark.asyncio
    async def test_document_wraps_fitted_markup(self, orchestrator, sample_content):
        page = make_fake_page()

        html = await orchestrator.export_as_document(
            page, "claudeStyle", sample_content, ExportJob(bottom_reserved_px=150)
        )

        assert '<div class="card-frame">mounted</div>' in html
        assert "var reserve = 150;" in html
        assert "<script src" not in html
        assert _mount_calls(page) == 1
        assert _unmount_calls(page) == 1

    @pytest.mark.asyncio
    async def test_fit_runs_reserve_title_then_viewport(self, orchestrator, sample_content):
        page = make_fake_page()
        await orchestrator.export_as_document(page, "claudeStyle", sample_content)

        scripts = [call.args[0] for call in page.evaluate.call_args_list]
        reserve_at = next(i for i, s in enumerate(scripts) if "p2vBasePaddingBottom" in s)
        title_at = next(i for i, s in enumerate(scripts) if "scrollWidth" in s)
        height_at = next(i for i, s in enumerate(scripts) if "scrollHeight" in s)
        assert reserve_at < title_at < height_at


class TestPageFailures:
    """Browser errors outside the capture chain surface as CaptureFailed."""

    @pytest.mark.asyncio
    async def test_image_export_classifies_closed_page(self, orchestrator, sample_content, capturer):
        page = make_fake_page()
        page.evaluate.side_effect = PlaywrightError("Target page, context or browser has been closed")

        with pytest.raises(CaptureFailed, match="has been closed") as exc_info:
            await orchestrator.export_as_image(
                page, "claudeStyle", sample_content, ExportJob(renderer=PngRenderer.LOCAL)
            )

        assert isinstance(exc_info.value.cause, PlaywrightError)
        assert capturer.capture_artifact.await_count == 0

    @pytest.mark.asyncio
    async def test_image_export_classifies_source_failure(self, orchestrator, sample_content):
        source = MagicMock()
        source.bounding_box = AsyncMock(side_effect=PlaywrightError("Element is not attached to the DOM"))

        with pytest.raises(CaptureFailed, match="not attached"):
            await orchestrator.export_as_image(
                make_fake_page(), "claudeStyle", sample_content, ExportJob(renderer=PngRenderer.LOCAL), source=source
            )

    @pytest.mark.asyncio
    async def test_document_export_classifies_serialize_failure(self, orchestrator, sample_content):
        page = make_fake_page()
        page.locator.return_value.inner_html.side_effect = PlaywrightError("Execution context was destroyed")

        with pytest.raises(CaptureFailed, match="Document export failed"):
            await orchestrator.export_as_document(page, "claudeStyle", sample_content)
        assert _unmount_calls(page) == 1


class TestThemeProtocol:
    @pytest.mark.asyncio
    async def test_fit_uses_theme_title_bounds(self, orchestrator, sample_content):
        document = FakeLiveDocument(width_per_px=10)
        target = MagicMock()
        target.live_document.return_value = document

        await orchestrator.fit_target(target, PlainTheme(), sample_content, ExportJob())

        assert document.sizes_set[0] == 77

    @pytest.mark.asyncio
    async def test_document_export_with_plain_theme(self, orchestrator, sample_content):
        html = await orchestrator.export_as_document(make_fake_page(), PlainTheme(), sample_content)
        assert "var size = 77;" in html
