"""
API request and response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Request models do not strip whitespace: passwords are taken byte for byte,
and blank-field checks belong to SessionManager, which reports them as
invalid_input rather than as a 422 schema error.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import AccountView, TokenPair

# Character cap matching bcrypt's 72-byte input limit. Multi-byte passwords can
# still exceed the byte limit under this cap; SessionManager rejects those as
# invalid_input.
_PASSWORD_MAX = 72


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Body for POST /api/v1/users/login. Either username or email identifies the account."""

    username: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)


class RefreshRequest(BaseModel):
    """Optional body for POST /api/v1/users/refresh-token (the cookie wins when both are sent)."""

    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)
    new_password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)


class UpdateAccountRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public account fields. There is deliberately no password or token field here."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str
    created_at: str
    updated_at: str

    @classmethod
    def from_view(cls, view: AccountView) -> "AccountResponse":
        return cls(
            id=view.id,
            username=view.username,
            email=view.email,
            full_name=view.full_name,
            avatar_url=view.avatar_url,
            cover_image_url=view.cover_image_url,
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class LoginData(BaseModel):
    user: AccountResponse
    access_token: str
    refresh_token: str


class ApiResponse(BaseModel):
    """Success envelope shared by every users route: status, payload, message."""

    status_code: int
    data: Any = None
    message: str
    success: bool = True


class ErrorDetail(BaseModel):
    """Structured error body. Always includes a machine-readable code."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope: {"error": {"code": "...", "message": "..."}}."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
