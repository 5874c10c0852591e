"""
Remote Render Client
====================

aiohttp client for the render API. Posts card content and returns PNG
bytes; every failure is classified into the shared error taxonomy so the
orchestrator can log it and fall back to local capture.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from cardrender.config.logging import get_logger
from cardrender.config.settings import Settings, get_settings
from cardrender.core.errors import AuthFailure, RemoteRenderError, UpstreamTimeout, ValidationFailure
from cardrender.models.schemas import CardContent

logger = get_logger(__name__)

RENDER_PATH = "/render"
PNG_CONTENT_TYPE = "image/png"


def _error_message(status: int, body: bytes) -> str:
    """Prefer the JSON ``message``/``error`` field, then the raw text, then the status."""
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text) if text else None
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return text or f"HTTP {status}"


class RenderApiClient:
    """Client for ``POST {base_url}/render``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        bearer_token: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.render_api_base_url).rstrip("/")
        self.timeout_ms = int(timeout_ms or self.settings.render_api_timeout_ms)
        self.bearer_token = bearer_token if bearer_token is not None else self.settings.render_api_bearer_token
        self.logger: Any = logger.bind(component="render_api_client")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{RENDER_PATH}"

    def build_payload(self, template_id: str, content: CardContent, dpr: int) -> Dict[str, Any]:
        payload = content.to_wire()
        payload["templateId"] = template_id
        payload["dpr"] = 2 if dpr == 2 else 1
        return payload

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": PNG_CONTENT_TYPE}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers

    async def render_png(self, template_id: str, content: CardContent, dpr: int = 1) -> bytes:
        """
        Render content remotely.

        Args:
            template_id: Theme id known to the render API
            content: Validated card content
            dpr: Device pixel ratio, 1 or 2

        Returns:
            PNG bytes

        Raises:
            UpstreamTimeout: If the call exceeded the timeout or the API reported one
            AuthFailure: On HTTP 401
            ValidationFailure: On HTTP 400
            RemoteRenderError: On any other error status, a non-PNG body, or a transport error
        """
        payload = self.build_payload(template_id, content, dpr)
        timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000)

        self.logger.info("Remote render requested", endpoint=self.endpoint, template_id=template_id, dpr=dpr)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint, json=payload, headers=self._headers()) as response:
                    body = await response.read()
                    content_type = response.headers.get("Content-Type", "")
                    status = response.status
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(f"Render API timed out after {self.timeout_ms}ms", cause=e)
        except aiohttp.ClientError as e:
            raise RemoteRenderError(f"Render API request failed: {e}", cause=e)

        if status >= 400:
            message = _error_message(status, body)
            self.logger.warning("Remote render rejected", status=status, error=message)
            if status == 401:
                raise AuthFailure(message)
            if status == 400:
                raise ValidationFailure(message)
            if status == 504:
                raise UpstreamTimeout(message)
            raise RemoteRenderError(message)

        if PNG_CONTENT_TYPE not in content_type.lower():
            raise RemoteRenderError(
                f"Render API returned non-PNG content: {content_type or 'unknown'}"
            )
        if not body:
            raise RemoteRenderError("Render API returned an empty body")

        self.logger.info("Remote render completed", file_size=len(body))
        return body
