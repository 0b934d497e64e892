"""
auth/passwords.py -- Password hashing and verification (bcrypt).

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
ValueError instead of truncating. SessionManager rejects longer passwords
with exceeds_bcrypt_limit() before anything is hashed, so no stored hash was
ever made from one.

Plaintext never leaves this module in any form other than a bcrypt hash, and
nothing here logs its arguments.

Layer rule: no imports from api/, core/ or media/.
"""

from __future__ import annotations

import bcrypt

MAX_PASSWORD_BYTES = 72


def exceeds_bcrypt_limit(plain: str) -> bool:
    """True when the UTF-8 encoding of the password is longer than bcrypt accepts."""
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the plaintext password.

    Raises ValueError for input over MAX_PASSWORD_BYTES; callers check
    exceeds_bcrypt_limit() first.
    """
    if exceeds_bcrypt_limit(plain):
        raise ValueError(f"Password is longer than {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the bcrypt hash.

    A malformed or empty hash is a mismatch, not an error. An over-long
    password is a mismatch too, since it can never have been stored; it still
    costs one bcrypt round so the rejection takes as long as any other.
    """
    encoded = plain.encode("utf-8")
    try:
        matched = bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
    except ValueError:
        return False
    return matched and len(encoded) <= MAX_PASSWORD_BYTES


# Computed once at import so the first login attempt is not measurably slower
# than later ones.
_DUMMY_HASH: str = hash_password("accountservice_timing_dummy")


def equalize_timing(plain: str) -> None:
    """Spend one bcrypt verification when there is no real hash to check.

    Login calls this for unknown usernames/emails so the response time does
    not reveal whether an account exists.
    """
    verify_password(plain, _DUMMY_HASH)
