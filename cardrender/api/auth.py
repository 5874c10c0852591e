"""
Authentication Utilities
=======================

Bearer-token check for write endpoints. Tokens are compared in constant
time; without a configured token, writes depend on
``allow_unauthenticated_write``.
"""

import hmac
from typing import Optional

from fastapi import Header, Request

from cardrender.config.settings import Settings
from cardrender.core.errors import AuthFailure

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, or None."""
    if not authorization:
        return None
    value = authorization.strip()
    if value[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
        return None
    token = value[len(BEARER_PREFIX):].strip()
    return token or None


def is_write_allowed(settings: Settings, authorization: Optional[str]) -> bool:
    expected = settings.api_bearer_token
    if not expected:
        return bool(settings.allow_unauthenticated_write)
    provided = extract_bearer_token(authorization)
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_write_access(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> None:
    """
    FastAPI dependency guarding write endpoints.

    Raises:
        AuthFailure: If the request carries no valid credential
    """
    settings: Settings = request.app.state.settings
    if not is_write_allowed(settings, authorization):
        raise AuthFailure("Unauthorized")
