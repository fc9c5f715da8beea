"""
api/routes/v1/auth.py -- Student authentication REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create account; sets session cookies; 201
  POST /api/v1/auth/login    -- password login; sets session cookies
  POST /api/v1/auth/refresh  -- rotate refresh token; sets new session cookies
  POST /api/v1/auth/logout   -- ends the session by refresh cookie; clears cookies
  GET  /api/v1/auth/me       -- current identity (requires auth)

Security:
  POST /login is rate-limited (LOGIN_RATE_LIMIT, default 10/minute per IP).
  authenticate_student() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response that carries tokens.
  Tokens are set as httpOnly cookies. The refresh token is never returned in a
  response body; /refresh also reads it from the request body for API clients.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    CredentialsRequest,
    ErrorDetail,
    ErrorResponse,
    LogoutResponse,
    MeResponse,
    RefreshRequest,
    SessionResponse,
)
from auth.accounts import AccountProblem, authenticate_student, register_student
from auth.dependencies import REFRESH_COOKIE, clear_session_cookies, get_current_claims, set_session_cookies
from auth.models import RenewedSession, Student
from auth.sessions import SessionManager
from auth.store import StudentStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _problem_response(status_code: int, problem: AccountProblem) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(code="invalid_credentials", message=problem.error, path=problem.path)
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _session_response(
    request: Request, status_code: int, message: str, access_token: str, refresh_token: str, student_id: int
) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=SessionResponse(message=message, access_token=access_token, student_id=student_id).model_dump(),
    )
    set_session_cookies(request, resp, access_token, refresh_token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _start_session(request: Request, student: Student, status_code: int, message: str) -> JSONResponse:
    manager: SessionManager = request.app.state.session_manager
    pair = manager.create_session({"id": student.id, "email": student.email})
    return _session_response(request, status_code, message, pair.access_token, pair.refresh_token, student.id)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=SessionResponse, status_code=201)
def signup(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Register a student and sign them in. 400 with the offending field on failure."""
    student_store: StudentStore = request.app.state.student_store
    result = register_student(student_store, body.email, body.password)
    if isinstance(result, AccountProblem):
        return _problem_response(400, result)
    return _start_session(request, result, 201, "Student signed up successfully")


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=SessionResponse)
def login(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Authenticate with email and password and start a fresh session.

    A previous session of the same student is superseded: its refresh token
    stops working immediately.
    """
    student_store: StudentStore = request.app.state.student_store
    result = authenticate_student(student_store, body.email, body.password)
    if isinstance(result, AccountProblem):
        return _problem_response(401, result)
    return _start_session(request, result, 200, "Student logged in successfully")


@router.post("/auth/refresh", response_model=SessionResponse)
def refresh(request: Request, body: Optional[RefreshRequest] = None) -> JSONResponse:
    """Exchange the refresh token (cookie, else body) for a new pair.

    On failure the stale cookies are cleared so the browser stops presenting
    a token that can never succeed again.
    """
    manager: SessionManager = request.app.state.session_manager
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    if not token:
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="refresh_missing", message="No refresh token provided")
            ).model_dump(),
        )

    result = manager.renew(token)
    if not isinstance(result, RenewedSession):
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="refresh_rejected", message=result.error, detail=result.reason)
            ).model_dump(),
        )
        clear_session_cookies(resp)
        return resp
    return _session_response(
        request, 200, "Tokens refreshed successfully", result.access_token, result.refresh_token, result.student_id
    )


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request) -> JSONResponse:
    """End the session named by the refresh cookie and clear both cookies.

    Succeeds (ended=false) when there is no cookie or the session is already gone.
    """
    manager: SessionManager = request.app.state.session_manager
    ended = manager.end_session(request.cookies.get(REFRESH_COOKIE, ""))
    resp = JSONResponse(content=LogoutResponse(ended=ended).model_dump())
    clear_session_cookies(resp)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(claims: dict[str, Any] = Depends(get_current_claims)) -> MeResponse:
    """Return identity information from the caller's access token."""
    return MeResponse(student_id=claims["id"], email=claims["email"], expires_at=claims.get("exp"))
