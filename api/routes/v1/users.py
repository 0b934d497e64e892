"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST  /api/v1/users/register         -- multipart signup with avatar (+ optional cover)
  POST  /api/v1/users/login            -- password login; sets both token cookies
  POST  /api/v1/users/logout           -- clears stored refresh token and both cookies (requires auth)
  POST  /api/v1/users/refresh-token    -- rotates the token pair (cookie or body)
  POST  /api/v1/users/change-password  -- requires auth
  GET   /api/v1/users/current-user     -- requires auth
  PATCH /api/v1/users/update-account   -- full name / email (requires auth)
  PATCH /api/v1/users/avatar           -- multipart (requires auth)
  PATCH /api/v1/users/cover-image      -- multipart (requires auth)

Every handler builds a SessionManager for the request, calls one operation
and maps the returned Result: Ok -> ApiResponse envelope, Err -> HTTPException
with the error kind as the code. The kind-to-status table lives here; auth/
knows nothing about HTTP.

Security:
  Login and refresh-token are rate-limited per client address.
  Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from api.limiter import CREDENTIAL_RATE_LIMIT, limiter
from api.models import (
    AccountResponse,
    ApiResponse,
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenPairResponse,
    UpdateAccountRequest,
)
from auth.dependencies import get_current_account
from auth.models import Account
from auth.result import Err, ErrorKind, Result
from auth.session import SessionManager
from auth.tokens import REFRESH_COOKIE, clear_token_cookies, set_token_cookies
from media.files import TempFileStore, UploadRejected

router = APIRouter()

_STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.WEAK_CREDENTIAL: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPLOAD_FAILED: 400,
    ErrorKind.INTERNAL: 500,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_session_manager(request: Request) -> SessionManager:
    """Build a SessionManager over the app-wide store, issuer and uploader."""
    state = request.app.state
    return SessionManager(state.account_store, state.token_issuer, state.uploader)


def _unwrap(result: Result):
    if isinstance(result, Err):
        raise HTTPException(
            status_code=_STATUS_FOR_KIND[result.kind],
            detail={"code": result.kind.value, "message": result.message},
        )
    return result.value


def _envelope(status_code: int, data, message: str) -> JSONResponse:
    body = ApiResponse(status_code=status_code, data=data, message=message).model_dump(mode="json")
    return JSONResponse(status_code=status_code, content=body)


async def _spool(files: TempFileStore, upload: Optional[UploadFile]) -> Optional[str]:
    try:
        return await files.save_upload(upload)
    except UploadRejected as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": ErrorKind.INVALID_INPUT.value, "message": str(exc)},
        ) from exc


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/register", status_code=201)
async def register(
    request: Request,
    username: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    fullname: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    avatar: Optional[UploadFile] = File(default=None),
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Create an account. Avatar is mandatory; the cover image is optional."""
    files: TempFileStore = request.app.state.temp_files
    avatar_path = await _spool(files, avatar)
    cover_path = None
    try:
        cover_path = await _spool(files, cover_image)
        result = await sessions.register(username, email, fullname, password, avatar_path, cover_path)
    finally:
        # The uploader removes files it touched; this covers early rejections.
        files.discard(avatar_path)
        files.discard(cover_path)
    view = _unwrap(result)
    return _envelope(201, AccountResponse.from_view(view).model_dump(), "User registered successfully.")


@limiter.limit(CREDENTIAL_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/users/login")
def login(request: Request, body: LoginRequest, sessions: SessionManager = Depends(get_session_manager)) -> JSONResponse:
    """Authenticate by username or email; set accessToken/refreshToken cookies and return both."""
    outcome = _unwrap(sessions.login(body.password, username=body.username, email=body.email))
    data = LoginData(
        user=AccountResponse.from_view(outcome.account),
        access_token=outcome.tokens.access_token,
        refresh_token=outcome.tokens.refresh_token,
    )
    resp = _envelope(200, data.model_dump(), "User logged in successfully.")
    set_token_cookies(resp, outcome.tokens, request.app.state.token_issuer, request.app.state.settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(CREDENTIAL_RATE_LIMIT)
@router.post("/users/refresh-token")
def refresh_token(
    request: Request,
    body: Optional[RefreshRequest] = None,
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Rotate the session: the presented refresh token is spent and a new pair issued.

    The refreshToken cookie takes precedence over a refresh_token in the body.
    A browser that still holds a stale cookie gets 409 even when the body
    carries the current token; API clients that send the body should not
    also send the cookie.
    """
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    pair = _unwrap(sessions.refresh_session(presented))
    resp = _envelope(200, TokenPairResponse.from_pair(pair).model_dump(), "Access token refreshed.")
    set_token_cookies(resp, pair, request.app.state.token_issuer, request.app.state.settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/users/logout")
def logout(
    request: Request,
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    _unwrap(sessions.logout(current.id))
    resp = _envelope(200, {}, "User logged out.")
    clear_token_cookies(resp, request.app.state.settings.secure_cookies)
    return resp


@router.post("/users/change-password")
def change_password(
    body: ChangePasswordRequest,
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    _unwrap(sessions.change_password(current.id, body.old_password, body.new_password))
    return _envelope(200, {}, "Password changed successfully.")


@router.get("/users/current-user")
def current_user(
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    view = _unwrap(sessions.get_account(current.id))
    return _envelope(200, AccountResponse.from_view(view).model_dump(), "Current user fetched successfully.")


@router.patch("/users/update-account")
def update_account(
    body: UpdateAccountRequest,
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    view = _unwrap(sessions.update_profile(current.id, body.full_name, body.email))
    return _envelope(200, AccountResponse.from_view(view).model_dump(), "Account details updated successfully.")


@router.patch("/users/avatar")
async def update_avatar(
    request: Request,
    avatar: Optional[UploadFile] = File(default=None),
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    files: TempFileStore = request.app.state.temp_files
    path = await _spool(files, avatar)
    try:
        result = await sessions.update_avatar(current.id, path)
    finally:
        files.discard(path)
    view = _unwrap(result)
    return _envelope(200, AccountResponse.from_view(view).model_dump(), "Avatar updated successfully.")


@router.patch("/users/cover-image")
async def update_cover_image(
    request: Request,
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    current: Account = Depends(get_current_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    files: TempFileStore = request.app.state.temp_files
    path = await _spool(files, cover_image)
    try:
        result = await sessions.update_cover_image(current.id, path)
    finally:
        files.discard(path)
    view = _unwrap(result)
    return _envelope(200, AccountResponse.from_view(view).model_dump(), "Cover image updated successfully.")
