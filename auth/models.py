"""
auth/models.py -- Domain dataclasses for accounts and session credentials.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store and SessionManager do the work.

Layer rule: no imports from api/, core/ or media/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered user as persisted by AccountStore.

    username is always lowercase. email keeps the casing it was registered
    with; lookups compare it case-insensitively.

    refresh_token holds the single live refresh token for this account. None
    means logged out. Any refresh token not equal to this value is rejected,
    however valid its signature.
    """

    username: str
    email: str
    full_name: str
    password_hash: str
    avatar_url: str = ""
    cover_image_url: str = ""
    id: int | None = None
    refresh_token: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class AccountView:
    """Outward projection of an Account. Never carries the hash or the token."""

    id: int
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginOutcome:
    account: AccountView
    tokens: TokenPair
