"""
Unit Tests for the Render API Client
====================================

Runs the client against an in-process aiohttp server.
"""

import asyncio
import json
from typing import Any, Dict

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from cardrender.core.errors import AuthFailure, RemoteRenderError, UpstreamTimeout, ValidationFailure
from cardrender.core.rendering.remote import RenderApiClient, _error_message

from tests.utils.fakes import make_png


@pytest_asyncio.fixture
async def render_api():
    """Fake render API; tests tweak ``state`` to script the response."""
    state: Dict[str, Any] = {
        "status": 200,
        "body": make_png(),
        "content_type": "image/png",
        "delay": 0.0,
        "requests": [],
    }

    async def handler(request: web.Request) -> web.Response:
        state["requests"].append(
            {"json": await request.json(), "authorization": request.headers.get("Authorization")}
        )
        if state["delay"]:
            await asyncio.sleep(state["delay"])
        return web.Response(status=state["status"], body=state["body"], content_type=state["content_type"])

    app = web.Application()
    app.router.add_post("/api/render", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/api")), state
    finally:
        await server.close()


class TestRenderApiClient:
    @pytest.mark.asyncio
    async def test_success(self, render_api, sample_content, test_settings):
        base_url, state = render_api
        client = RenderApiClient(base_url=base_url, bearer_token="secret", settings=test_settings)

        data = await client.render_png("claudeStyle", sample_content, dpr=2)

        assert data == state["body"]
        sent = state["requests"][0]
        assert sent["authorization"] == "Bearer secret"
        assert sent["json"]["templateId"] == "claudeStyle"
        assert sent["json"]["mainTitle"] == "Weekly Update"
        assert sent["json"]["dpr"] == 2
        assert len(sent["json"]["cards"]) == 3

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, render_api, sample_content, test_settings):
        base_url, state = render_api
        await RenderApiClient(base_url=base_url, settings=test_settings).render_png("claudeStyle", sample_content)

        assert state["requests"][0]["authorization"] is None
        assert state["requests"][0]["json"]["dpr"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [(401, AuthFailure), (400, ValidationFailure), (504, UpstreamTimeout), (500, RemoteRenderError)],
    )
    async def test_error_statuses(self, render_api, sample_content, test_settings, status, error_type):
        base_url, state = render_api
        state.update(
            status=status,
            body=json.dumps({"ok": False, "error": "went wrong"}).encode(),
            content_type="application/json",
        )

        with pytest.raises(error_type) as exc_info:
            await RenderApiClient(base_url=base_url, settings=test_settings).render_png("claudeStyle", sample_content)
        assert exc_info.value.message == "went wrong"

    @pytest.mark.asyncio
    async def test_non_png_body(self, render_api, sample_content, test_settings):
        base_url, state = render_api
        state.update(body=b"<html></html>", content_type="text/html")

        with pytest.raises(RemoteRenderError, match="non-PNG"):
            await RenderApiClient(base_url=base_url, settings=test_settings).render_png("claudeStyle", sample_content)

    @pytest.mark.asyncio
    async def test_timeout(self, render_api, sample_content, test_settings):
        base_url, state = render_api
        state["delay"] = 1.0
        client = RenderApiClient(base_url=base_url, timeout_ms=100, settings=test_settings)

        with pytest.raises(UpstreamTimeout):
            await client.render_png("claudeStyle", sample_content)

    @pytest.mark.asyncio
    async def test_unreachable(self, sample_content, test_settings):
        client = RenderApiClient(base_url="http://127.0.0.1:9", timeout_ms=2000, settings=test_settings)

        with pytest.raises((RemoteRenderError, UpstreamTimeout)):
            await client.render_png("claudeStyle", sample_content)

    def test_endpoint(self, test_settings):
        client = RenderApiClient(base_url="https://render.example/api/", settings=test_settings)
        assert client.endpoint == "https://render.example/api/render"


class TestErrorMessage:
    def test_prefers_message_then_error(self):
        assert _error_message(400, b'{"message": "m", "error": "e"}') == "m"
        assert _error_message(400, b'{"error": "e"}') == "e"

    def test_falls_back_to_text_then_status(self):
        assert _error_message(502, b"Bad Gateway") == "Bad Gateway"
        assert _error_message(502, b"") == "HTTP 502"
