from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from arqsite.core.config import settings
from arqsite.core.errors import AuthenticationAppError
from arqsite.core.rate_limit import rate_limit
from arqsite.core.security import (
    AdminSession,
    AdminSessionAuthority,
    get_admin_session,
    get_session_authority,
)
from arqsite.schemas.auth import LoginRequest, LoginResponse, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin Auth"])


def _set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.auth.cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("admin_login", "auth"))],
)
async def login(
    payload: LoginRequest,
    response: Response,
    authority: AdminSessionAuthority = Depends(get_session_authority),
) -> LoginResponse:
    """Exchange admin credentials for a session cookie.

    Unknown usernames and wrong passwords get the same 401 response.

    Raises:
        AuthenticationAppError: 401 for any credential mismatch.
    """
    if not authority.verify_credentials(payload.username, payload.password):
        logger.warning("admin_auth.login_failed")
        raise AuthenticationAppError(code="invalid_credentials", message="Invalid credentials")

    token = authority.create_session(payload.username)
    _set_session_cookie(response, token, authority.ttl_seconds)
    logger.info("admin_auth.login_succeeded", extra={"username": payload.username})
    return LoginResponse()


@router.post("/logout", response_model=LoginResponse)
async def logout(response: Response) -> LoginResponse:
    """Clear the session cookie. Tokens stay valid until they expire."""
    response.delete_cookie(
        key=settings.auth.cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    logger.info("admin_auth.logout")
    return LoginResponse()


@router.get("/session", response_model=SessionResponse)
async def current_session(session: AdminSession = Depends(get_admin_session)) -> SessionResponse:
    return SessionResponse(
        username=session.username,
        issued_at=datetime.fromtimestamp(session.iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(session.exp, tz=timezone.utc),
    )
