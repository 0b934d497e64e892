"""
auth/dependencies.py -- FastAPI Depends() helpers for authenticated routes.

The access token is looked for in two places, in order:
  1. "accessToken" cookie -- set by POST /users/login and /users/refresh-token.
  2. Authorization: Bearer <token> header -- non-browser API clients.

Access tokens are stateless: a valid signature and unexpired "exp" are
enough, then the account is loaded by the "sub" claim. The stored refresh
token plays no part here.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: may import from fastapi because it is part of the FastAPI
dependency injection system; no imports from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account
from auth.store import AccountStore
from auth.tokens import ACCESS_COOKIE, TokenIssuer


def _extract_access_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_current_account(request: Request) -> Account | None:
    """Authenticate the request from its access token. Never raises."""
    token = _extract_access_token(request)
    if not token:
        return None
    issuer: TokenIssuer = request.app.state.token_issuer
    account_id = issuer.verify_access_token(token)
    if account_id is None:
        return None
    store: AccountStore = request.app.state.account_store
    return store.get_by_id(account_id)


def get_current_account(request: Request) -> Account:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/users/current-user")
        async def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Invalid access token."},
        )
    return account
