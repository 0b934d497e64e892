"""
auth/session.py -- SessionManager: registration, login, logout, refresh, password change.

SessionManager is the single entry point the request layer calls. It holds no
durable state of its own -- the store owns every Account -- so a new instance
per request is cheap and safe.

Per-account session states:
  LoggedOut  refresh_token is None
  LoggedIn   refresh_token holds the most recently issued refresh token

  login            LoggedOut/LoggedIn -> LoggedIn    (token set)
  refresh_session  LoggedIn -> LoggedIn              (token rotated)
  logout           any -> LoggedOut                  (token cleared, idempotent)

Every operation returns Ok(value) or Err(kind, message) and fails fast on the
first failed check. Nothing is persisted before every check has passed, so a
rejected operation leaves the stored account untouched.

Logging: account ids only. Passwords, hashes and tokens are never logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import IntegrityError

from auth import password_policy
from auth.models import Account, AccountView, LoginOutcome, TokenPair
from auth.passwords import (
    MAX_PASSWORD_BYTES,
    equalize_timing,
    exceeds_bcrypt_limit,
    hash_password,
    verify_password,
)
from auth.result import Err, ErrorKind, Ok, Result

if TYPE_CHECKING:
    from auth.store import AccountStore
    from auth.tokens import TokenIssuer
    from media.uploader import MediaUploader

logger = logging.getLogger("accountservice.session")

REUSED_REFRESH_MESSAGE = "Refresh token is expired or used."
PASSWORD_TOO_LONG_MESSAGE = f"Password must be at most {MAX_PASSWORD_BYTES} bytes long."


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def to_view(account: Account) -> AccountView:
    """Strip credential and session fields for outward use."""
    return AccountView(
        id=account.id,
        username=account.username,
        email=account.email,
        full_name=account.full_name,
        avatar_url=account.avatar_url,
        cover_image_url=account.cover_image_url,
        created_at=account.created_at or "",
        updated_at=account.updated_at or "",
    )


class SessionManager:
    """Orchestrates PasswordPolicy, password verification, TokenIssuer and AccountStore.

    Usage:
        sessions = SessionManager(store, issuer, uploader)
        result = sessions.login("Secret1!", username="ana")
        if result.ok:
            pair = result.value.tokens
    """

    def __init__(self, store: AccountStore, issuer: TokenIssuer, uploader: MediaUploader) -> None:
        self._store = store
        self._issuer = issuer
        self._uploader = uploader

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        full_name: Optional[str],
        password: Optional[str],
        avatar_path: Optional[str],
        cover_image_path: Optional[str] = None,
    ) -> Result[AccountView]:
        """Create an account in the LoggedOut state.

        Check order: required fields, identity conflict, password length,
        password policy, avatar presence, uploads, insert. The avatar and the
        optional cover upload run concurrently; only the avatar is mandatory.
        """
        if any(_blank(v) for v in (username, email, full_name, password)):
            return Err(ErrorKind.INVALID_INPUT, "All fields are required.")
        username = username.strip().lower()
        email = email.strip()
        full_name = full_name.strip()

        if self._store.find_by_email_or_username(email=email, username=username) is not None:
            return Err(ErrorKind.CONFLICT, "User with email or username already exists.")

        if exceeds_bcrypt_limit(password):
            return Err(ErrorKind.INVALID_INPUT, PASSWORD_TOO_LONG_MESSAGE)

        policy = password_policy.evaluate(password)
        if not policy.passed:
            return Err(ErrorKind.WEAK_CREDENTIAL, policy.message)

        if _blank(avatar_path):
            return Err(ErrorKind.INVALID_INPUT, "Avatar file is required.")

        avatar, cover = await asyncio.gather(
            self._uploader.upload(avatar_path),
            self._uploader.upload(cover_image_path),
        )
        if avatar is None or not avatar.url:
            return Err(ErrorKind.UPLOAD_FAILED, "Avatar file could not be uploaded.")

        account = Account(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            avatar_url=avatar.url,
            cover_image_url=cover.url if cover is not None else "",
        )
        try:
            account_id = self._store.create_account(account)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same identity.
            orphaned = [a.public_id or a.url for a in (avatar, cover) if a is not None]
            logger.warning("Registration lost an identity race; orphaned uploads: %s", ", ".join(orphaned))
            return Err(ErrorKind.CONFLICT, "User with email or username already exists.")

        created = self._store.get_by_id(account_id)
        if created is None:
            return Err(ErrorKind.INTERNAL, "Something went wrong while registering the user.")
        logger.info("Registered account %s", account_id)
        return Ok(to_view(created))

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(
        self, password: Optional[str], username: Optional[str] = None, email: Optional[str] = None
    ) -> Result[LoginOutcome]:
        """Verify credentials and start a session (sets the stored refresh token)."""
        if _blank(username) and _blank(email):
            return Err(ErrorKind.INVALID_INPUT, "Username or email is required.")
        password = password or ""

        account = self._store.find_by_email_or_username(email=email, username=username)
        if account is None:
            equalize_timing(password)
            return Err(ErrorKind.NOT_FOUND, "User does not exist.")

        if not verify_password(password, account.password_hash):
            logger.info("Failed login for account %s", account.id)
            return Err(ErrorKind.UNAUTHORIZED, "Invalid user credentials.")

        pair = self._issuer.issue_pair(account)
        if not self._store.set_refresh_token(account.id, pair.refresh_token):
            return Err(ErrorKind.INTERNAL, "Something went wrong while generating tokens.")

        logger.info("Account %s logged in", account.id)
        return Ok(LoginOutcome(account=to_view(account), tokens=pair))

    def logout(self, account_id: int) -> Result[None]:
        """Clear the stored refresh token. Logging out twice is not an error."""
        self._store.set_refresh_token(account_id, None)
        logger.info("Account %s logged out", account_id)
        return Ok(None)

    # ------------------------------------------------------------------
    # Refresh (rotation)
    # ------------------------------------------------------------------

    def refresh_session(self, presented_token: Optional[str]) -> Result[TokenPair]:
        """Exchange the current refresh token for a new pair and invalidate the old one.

        The account comes only from the verified "sub" claim. A token with a
        valid signature is still rejected unless it equals the stored value:
        once exchanged (or after logout) it can never be replayed.
        """
        if _blank(presented_token):
            return Err(ErrorKind.UNAUTHORIZED, "Unauthorized request.")

        account_id = self._issuer.verify_refresh_signature(presented_token)
        if account_id is None:
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token.")

        account = self._store.get_by_id(account_id)
        if account is None:
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token.")

        if account.refresh_token is None or presented_token != account.refresh_token:
            logger.warning("Rejected stale or reused refresh token for account %s", account_id)
            return Err(ErrorKind.CONFLICT, REUSED_REFRESH_MESSAGE)

        pair = self._issuer.issue_pair(account)
        if not self._store.rotate_refresh_token(account_id, presented_token, pair.refresh_token):
            # Another refresh or a logout changed the stored token after our read.
            logger.warning("Concurrent refresh lost for account %s", account_id)
            return Err(ErrorKind.CONFLICT, REUSED_REFRESH_MESSAGE)

        logger.info("Rotated refresh token for account %s", account_id)
        return Ok(pair)

    # ------------------------------------------------------------------
    # Credentials and profile
    # ------------------------------------------------------------------

    def change_password(
        self, account_id: int, old_password: Optional[str], new_password: Optional[str]
    ) -> Result[None]:
        """Replace the password hash. The current session (refresh token) is left as is."""
        if _blank(old_password) or _blank(new_password):
            return Err(ErrorKind.INVALID_INPUT, "Old and new password are required.")

        if exceeds_bcrypt_limit(new_password):
            return Err(ErrorKind.INVALID_INPUT, PASSWORD_TOO_LONG_MESSAGE)

        policy = password_policy.evaluate(new_password)
        if not policy.passed:
            return Err(ErrorKind.WEAK_CREDENTIAL, policy.message)

        account = self._store.get_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist.")

        if not verify_password(old_password, account.password_hash):
            return Err(ErrorKind.UNAUTHORIZED, "Invalid old password.")

        self._store.update_fields(account_id, password_hash=hash_password(new_password))
        logger.info("Password changed for account %s", account_id)
        return Ok(None)

    def get_account(self, account_id: int) -> Result[AccountView]:
        account = self._store.get_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist.")
        return Ok(to_view(account))

    def update_profile(self, account_id: int, full_name: Optional[str], email: Optional[str]) -> Result[AccountView]:
        if _blank(full_name) or _blank(email):
            return Err(ErrorKind.INVALID_INPUT, "Full name and email are required.")
        try:
            updated = self._store.update_fields(account_id, full_name=full_name.strip(), email=email.strip())
        except IntegrityError:
            return Err(ErrorKind.CONFLICT, "Email is already in use.")
        if not updated:
            return Err(ErrorKind.NOT_FOUND, "User does not exist.")
        return self.get_account(account_id)

    async def update_avatar(self, account_id: int, avatar_path: Optional[str]) -> Result[AccountView]:
        return await self._replace_image(account_id, avatar_path, "avatar_url", "Avatar")

    async def update_cover_image(self, account_id: int, cover_image_path: Optional[str]) -> Result[AccountView]:
        return await self._replace_image(account_id, cover_image_path, "cover_image_url", "Cover image")

    async def _replace_image(
        self, account_id: int, local_path: Optional[str], field: str, label: str
    ) -> Result[AccountView]:
        if _blank(local_path):
            return Err(ErrorKind.INVALID_INPUT, f"{label} file is missing.")
        if self._store.get_by_id(account_id) is None:
            return Err(ErrorKind.NOT_FOUND, "User does not exist.")

        asset = await self._uploader.upload(local_path)
        if asset is None or not asset.url:
            return Err(ErrorKind.UPLOAD_FAILED, f"Error while uploading {label.lower()}.")

        self._store.update_fields(account_id, **{field: asset.url})
        return self.get_account(account_id)

