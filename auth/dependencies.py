"""
auth/dependencies.py -- FastAPI Depends() helpers and session cookies.

Access token sources, in priority order:
  1. "access_token" cookie -- set by signup/login/refresh.
  2. Authorization: Bearer <token> header -- API clients.

If neither is present but a "refresh_token" cookie is, the request is renewed
transparently: a new pair is minted, the old refresh token retired, and both
cookies are rewritten on the response. A presented but invalid access token is
NOT silently renewed -- the caller gets a 401 and must call /auth/refresh.

try_get_current_claims() is the soft variant (returns None on failure).
get_current_claims() wraps it and raises HTTP 401 if unauthenticated.

The SessionManager and Settings come from request.app.state, populated by the
lifespan in api/main.py.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, Response

from auth.duration import parse_duration
from auth.models import RenewedSession
from auth.sessions import SessionManager

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookies(request: Request, response: Response, access_token: str, refresh_token: str) -> None:
    """Write both tokens as httpOnly cookies whose max_age matches each token's TTL.

    samesite="lax" keeps the cookies off cross-site POSTs. secure follows the
    SECURE_COOKIES setting (true behind HTTPS in production).
    """
    settings = request.app.state.settings
    response.set_cookie(
        ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=parse_duration(settings.access_token_ttl),
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=parse_duration(settings.refresh_token_ttl),
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None


def try_get_current_claims(request: Request, response: Response) -> dict[str, Any] | None:
    """Return the caller's access-token claims, renewing from the refresh cookie if needed.

    Never raises for bad tokens. Storage errors during a transparent renewal
    propagate and surface as 500.
    """
    manager: SessionManager = request.app.state.session_manager

    token = request.cookies.get(ACCESS_COOKIE) or _bearer_token(request)
    if token:
        return manager.validate_access(token)

    refresh_token = request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        return None
    result = manager.renew(refresh_token)
    if not isinstance(result, RenewedSession):
        return None
    set_session_cookies(request, response, result.access_token, result.refresh_token)
    return manager.validate_access(result.access_token)


def get_current_claims(request: Request, response: Response) -> dict[str, Any]:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: dict = Depends(get_current_claims)): ...
    """
    claims = try_get_current_claims(request, response)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return claims
