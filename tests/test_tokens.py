"""Unit tests for auth/tokens.py and auth/passwords.py.

Covers:
- access and refresh tokens verify only with their own secret and type
- tokens minted back to back are distinct (random jti)
- expired tokens are rejected
- bcrypt hash/verify round trip and malformed-hash handling
- cookie helpers set and clear both httpOnly cookies
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.responses import JSONResponse
from jose import jwt

from auth.models import Account, TokenPair
from auth.passwords import (
    MAX_PASSWORD_BYTES,
    equalize_timing,
    exceeds_bcrypt_limit,
    hash_password,
    verify_password,
)
from auth.tokens import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    TokenIssuer,
    clear_token_cookies,
    set_token_cookies,
)
from core.config import Settings

from conftest import ACCESS_SECRET, REFRESH_SECRET


def _account(account_id: int = 7) -> Account:
    return Account(
        id=account_id,
        username="ana",
        email="ana@example.com",
        full_name="Ana Lima",
        password_hash="x",
    )


class TestTokenIssuer:
    def test_refresh_token_round_trip(self, issuer: TokenIssuer):
        token = issuer.issue_refresh_token(42)
        assert issuer.verify_refresh_signature(token) == 42

    def test_access_token_round_trip(self, issuer: TokenIssuer):
        token = issuer.issue_access_token(_account(9))
        assert issuer.verify_access_token(token) == 9

    def test_access_token_carries_identity_claims(self, issuer: TokenIssuer):
        claims = jwt.get_unverified_claims(issuer.issue_access_token(_account()))
        assert claims["sub"] == "7"
        assert claims["type"] == "access"
        assert claims["username"] == "ana"

    def test_refresh_token_carries_subject_only(self, issuer: TokenIssuer):
        claims = jwt.get_unverified_claims(issuer.issue_refresh_token(7))
        assert claims["sub"] == "7"
        assert "username" not in claims
        assert "email" not in claims

    def test_access_token_is_not_a_refresh_token(self, issuer: TokenIssuer):
        token = issuer.issue_access_token(_account())
        assert issuer.verify_refresh_signature(token) is None

    def test_refresh_token_is_not_an_access_token(self, issuer: TokenIssuer):
        token = issuer.issue_refresh_token(7)
        assert issuer.verify_access_token(token) is None

    def test_refresh_token_signed_with_access_secret_is_rejected(self, issuer: TokenIssuer):
        forged = jwt.encode(
            {"sub": "7", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        assert issuer.verify_refresh_signature(forged) is None

    def test_tokens_minted_back_to_back_differ(self, issuer: TokenIssuer):
        first = issuer.issue_pair(_account())
        second = issuer.issue_pair(_account())
        assert first.refresh_token != second.refresh_token
        assert first.access_token != second.access_token

    def test_expired_refresh_token_is_rejected(self, issuer: TokenIssuer):
        expired = jwt.encode(
            {"sub": "7", "type": "refresh", "exp": datetime.now(timezone.utc) - timedelta(seconds=5)},
            REFRESH_SECRET,
            algorithm="HS256",
        )
        assert issuer.verify_refresh_signature(expired) is None

    def test_garbage_is_rejected(self, issuer: TokenIssuer):
        assert issuer.verify_refresh_signature("not-a-jwt") is None
        assert issuer.verify_access_token("") is None

    def test_non_numeric_subject_is_rejected(self, issuer: TokenIssuer):
        token = jwt.encode(
            {"sub": "ana", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            REFRESH_SECRET,
            algorithm="HS256",
        )
        assert issuer.verify_refresh_signature(token) is None

    def test_expiry_follows_settings(self):
        settings = Settings(
            access_token_secret=ACCESS_SECRET,
            refresh_token_secret=REFRESH_SECRET,
            access_token_expire_seconds=60,
            refresh_token_expire_seconds=3600,
        )
        issuer = TokenIssuer(settings)
        access = jwt.get_unverified_claims(issuer.issue_access_token(_account()))
        refresh = jwt.get_unverified_claims(issuer.issue_refresh_token(7))
        assert access["exp"] - access["iat"] == 60
        assert refresh["exp"] - refresh["iat"] == 3600


class TestPasswords:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("Abc123!")
        assert hashed != "Abc123!"
        assert "Abc123!" not in hashed

    def test_verify_round_trip(self):
        hashed = hash_password("Abc123!")
        assert verify_password("Abc123!", hashed)
        assert not verify_password("Abc123?", hashed)

    def test_same_password_hashes_differently(self):
        assert hash_password("Abc123!") != hash_password("Abc123!")

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("Abc123!", "not-a-bcrypt-hash") is False
        assert verify_password("Abc123!", "") is False

    def test_equalize_timing_returns_nothing(self):
        assert equalize_timing("whatever") is None
        assert equalize_timing("x" * 100) is None

    def test_limit_is_counted_in_utf8_bytes(self):
        assert not exceeds_bcrypt_limit("x" * MAX_PASSWORD_BYTES)
        assert exceeds_bcrypt_limit("x" * (MAX_PASSWORD_BYTES + 1))
        assert exceeds_bcrypt_limit("\u00e9" * 37)

    def test_hash_rejects_over_long_password(self):
        with pytest.raises(ValueError):
            hash_password("Abc123!" + "x" * 80)

    def test_over_long_attempt_never_matches_its_72_byte_prefix(self):
        prefix = "Abc123!" + "x" * (MAX_PASSWORD_BYTES - 7)
        hashed = hash_password(prefix)
        assert verify_password(prefix, hashed)
        assert verify_password(prefix + "tail", hashed) is False


class TestCookieHelpers:
    def _set_cookie_headers(self, resp: JSONResponse) -> list[str]:
        return [v.decode() for k, v in resp.raw_headers if k.decode().lower() == "set-cookie"]

    def test_set_token_cookies_sets_both_http_only(self, issuer: TokenIssuer):
        resp = JSONResponse({})
        set_token_cookies(resp, TokenPair("acc", "ref"), issuer, secure=True)
        headers = self._set_cookie_headers(resp)
        assert len(headers) == 2
        assert any(h.startswith(f"{ACCESS_COOKIE}=acc") for h in headers)
        assert any(h.startswith(f"{REFRESH_COOKIE}=ref") for h in headers)
        for h in headers:
            assert "httponly" in h.lower()
            assert "secure" in h.lower()

    def test_clear_token_cookies_expires_both(self):
        resp = JSONResponse({})
        clear_token_cookies(resp, secure=False)
        headers = self._set_cookie_headers(resp)
        assert {h.split("=", 1)[0] for h in headers} == {ACCESS_COOKIE, REFRESH_COOKIE}
        for h in headers:
            assert "max-age=0" in h.lower()
