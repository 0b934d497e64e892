"""
auth/tokens.py -- Access/refresh token minting and verification, cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with two
       different secrets [S1], so a leaked access secret cannot mint refresh
       tokens and vice versa. Each token also carries a "type" claim; a token
       of one type is rejected where the other is expected even if someone
       configures the same secret twice.

  jti: every token carries a random jti. Two tokens minted for the same
       account in the same second are therefore still different strings,
       which rotation depends on: a refreshed pair must never equal the pair
       it replaces.

  Verification returns None on any failure. The caller (SessionManager or
       the request-auth dependency) turns None into an Unauthorized result.

  TokenIssuer has no side effects. Persisting the refresh token is the
  SessionManager's job.

Layer rule: no imports from api/ or media/. core/ is allowed -- it is the
kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt

from auth.models import TokenPair

if TYPE_CHECKING:
    from auth.models import Account
    from core.config import Settings

logger = logging.getLogger("accountservice.tokens")

_ALGORITHM = "HS256"

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


class TokenIssuer:
    """Mints and verifies the two token kinds for a given Settings.

    Usage:
        issuer = TokenIssuer(get_settings())
        pair = issuer.issue_pair(account)
        account_id = issuer.verify_refresh_signature(pair.refresh_token)
    """

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.access_token_secret
        self._refresh_secret = settings.refresh_token_secret
        self.access_expire_seconds = settings.access_token_expire_seconds
        self.refresh_expire_seconds = settings.refresh_token_expire_seconds

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def issue_access_token(self, account: Account) -> str:
        """Short-lived, stateless. username/email are informational only."""
        extra = {"username": account.username, "email": account.email}
        return self._encode(account.id, ACCESS_TOKEN_TYPE, self._access_secret, self.access_expire_seconds, extra)

    def issue_refresh_token(self, account_id: int) -> str:
        """Long-lived. Only the subject is carried; the current value is persisted by the caller."""
        return self._encode(account_id, REFRESH_TOKEN_TYPE, self._refresh_secret, self.refresh_expire_seconds)

    def issue_pair(self, account: Account) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(account),
            refresh_token=self.issue_refresh_token(account.id),
        )

    # ------------------------------------------------------------------
    # Verification (signature + expiry + type, no storage access)
    # ------------------------------------------------------------------

    def verify_access_token(self, token: str) -> int | None:
        return self._decode_subject(token, self._access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_signature(self, token: str) -> int | None:
        return self._decode_subject(token, self._refresh_secret, REFRESH_TOKEN_TYPE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(account_id: int, token_type: str, secret: str, expire_seconds: int, extra: dict | None = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + timedelta(seconds=expire_seconds),
        }
        if extra:
            payload.update(extra)
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)

    @staticmethod
    def _decode_subject(token: str, secret: str, expected_type: str) -> int | None:
        try:
            payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", expected_type, exc)
            return None
        if payload.get("type") != expected_type:
            return None
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return None


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_token_cookies(response, pair: TokenPair, issuer: TokenIssuer, secure: bool) -> None:
    """Write both tokens as httpOnly cookies on the response.

    httponly=True: JS cannot read either cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: HTTPS-only when SECURE_COOKIES=true (set in production).
    max_age: matches each token's own expiry.
    """
    response.set_cookie(
        ACCESS_COOKIE,
        value=pair.access_token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=issuer.access_expire_seconds,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=pair.refresh_token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=issuer.refresh_expire_seconds,
    )


def clear_token_cookies(response, secure: bool) -> None:
    """Delete both token cookies (logout)."""
    response.delete_cookie(ACCESS_COOKIE, httponly=True, samesite="lax", secure=secure)
    response.delete_cookie(REFRESH_COOKIE, httponly=True, samesite="lax", secure=secure)
