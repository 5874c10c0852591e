"""
Error Taxonomy
==============

Exceptions that cross component boundaries. Strategy-internal failures are
caught and classified where they happen; only these classes travel further.
"""

from typing import Optional


class CardRenderError(Exception):
    """Base class for all render/export failures."""

    status_code: int = 500
    error_code: str = "RENDER_ERROR"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AuthFailure(CardRenderError):
    """Missing or invalid credential. Never retried."""

    status_code = 401
    error_code = "UNAUTHORIZED"


class ValidationFailure(CardRenderError):
    """Bad request shape, content or template. Never retried."""

    status_code = 400
    error_code = "INVALID_REQUEST"


class UpstreamTimeout(CardRenderError):
    """A bounded load or network wait was exceeded; retrying later may help."""

    status_code = 504
    error_code = "UPSTREAM_TIMEOUT"


class RenderFailed(CardRenderError):
    """Headless render failed for a reason other than timeout."""

    status_code = 502
    error_code = "RENDER_FAILED"


class RemoteRenderError(CardRenderError):
    """The remote render API answered with an error or a non-image body."""

    status_code = 502
    error_code = "REMOTE_RENDER_FAILED"


class CaptureFailed(CardRenderError):
    """Every capture strategy was exhausted."""

    status_code = 500
    error_code = "CAPTURE_FAILED"
