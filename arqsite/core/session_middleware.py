"""Admin gateway middleware.

Every request under the protected prefix (``/api/admin`` by default) passes
through this check before any route logic runs:

1. Path on the public allowlist (login/logout) -> pass through.
2. No session cookie -> 401 ``no_session_token``.
3. Invalid, expired or wrong-type token -> 401 ``invalid_session_token``.
4. Otherwise the verified claims are stored on ``request.state.admin_session``.

Route handlers rely on this middleware and do not re-check the token.

Usage:
    app.middleware("http")(admin_session_middleware)
"""

from __future__ import annotations

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from arqsite.core.config import settings
from arqsite.core.exception_handlers import error_response
from arqsite.core.security import InvalidSessionError, get_session_authority

logger = logging.getLogger(__name__)


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def is_protected_path(path: str) -> bool:
    """True if ``path`` requires an admin session."""
    prefix = _normalize(settings.auth.protected_prefix)
    path = _normalize(path)
    if path != prefix and not path.startswith(prefix + "/"):
        return False
    public = {_normalize(p) for p in settings.auth.public_paths}
    return path not in public


def _unauthorized(code: str, message: str) -> JSONResponse:
    return error_response(401, code, message)


async def admin_session_middleware(request: Request, call_next) -> Response:
    """Reject requests to protected admin paths without a valid session."""

    path = request.url.path
    if not is_protected_path(path):
        return await call_next(request)

    token = request.cookies.get(settings.auth.cookie_name)
    if not token:
        logger.warning("admin_auth.no_token", extra={"request_path": path})
        return _unauthorized("no_session_token", "Unauthorized - No session token")

    authority = get_session_authority(request)
    try:
        session = authority.decode_session(token)
    except InvalidSessionError as exc:
        # Same response for both reasons; only the log tells them apart
        event = "admin_auth.wrong_type" if exc.code == "wrong_type" else "admin_auth.invalid_token"
        logger.warning(event, extra={"request_path": path, "reason": exc.message})
        return _unauthorized("invalid_session_token", "Invalid or expired token")

    request.state.admin_session = session
    return await call_next(request)
