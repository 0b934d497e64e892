#!/usr/bin/env python3
"""
Account service -- operator command line.

Usage:
  python main.py check-password 'Abc123!'
  python main.py revoke ana@example.com
  python main.py serve --host 0.0.0.0 --port 8000

Commands:
  check-password  Evaluate a candidate password against the strength policy.
                  Exit code 0 when it passes, 1 when it does not.
  revoke          Force-logout an account: clears its stored refresh token so
                  the current refresh token can no longer be exchanged.
                  Access tokens already issued stay valid until they expire.
  serve           Run the HTTP API with uvicorn.

Environment variables: see core/config.py (ACCESS_TOKEN_SECRET,
REFRESH_TOKEN_SECRET, DATABASE_URL, CLOUDINARY_*, DEBUG, ...).
"""

import argparse
import sys
from typing import Optional

from auth import password_policy
from auth.result import Err
from auth.session import SessionManager
from auth.store import AccountStore
from auth.tokens import TokenIssuer
from core.config import get_settings
from media.uploader import CloudinaryUploader


def _check_password(password: str) -> int:
    result = password_policy.evaluate(password)
    if result.passed:
        print("  [+] Password meets the policy.")
        return 0
    print(f"  [!] {result.message}")
    return 1


def _revoke(identifier: str, db_url: Optional[str] = None) -> int:
    settings = get_settings()
    store = AccountStore(db_url or settings.database_url)
    try:
        account = store.find_by_email_or_username(email=identifier, username=identifier)
        if account is None:
            print(f"  [!] No account matches '{identifier}'.")
            return 1
        sessions = SessionManager(store, TokenIssuer(settings), CloudinaryUploader(settings))
        result = sessions.logout(account.id)
        if isinstance(result, Err):
            print(f"  [!] {result.message}")
            return 1
        print(f"  [+] Session revoked for {account.username} (id {account.id}).")
        return 0
    finally:
        store.close()


def _serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Account service -- password policy checks, session revocation, API server.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check-password", help="Evaluate a password against the policy")
    p_check.add_argument("password")

    p_revoke = sub.add_parser("revoke", help="Clear an account's stored refresh token")
    p_revoke.add_argument("identifier", metavar="USERNAME_OR_EMAIL")
    p_revoke.add_argument("--db-url", default=None, help="Override DATABASE_URL")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "check-password":
        return _check_password(args.password)
    if args.command == "revoke":
        return _revoke(args.identifier, args.db_url)
    return _serve(args.host, args.port, args.reload)


if __name__ == "__main__":
    sys.exit(main())
