"""
auth/password_policy.py -- Password strength rules for new credentials.

A password passes when all four hold:
  - at least 7 characters
  - at least one character that changes when lowercased ("uppercase")
  - at least one character from SPECIAL_CHARACTERS
  - at least one ASCII digit

Known weak rule: the uppercase clause is `ch != ch.lower()`, not
`ch.isupper()`. For ASCII the two agree, but titlecase letters such as
"\\u01c5" and a few others that change under lowercasing also count.
The rule is kept as is; tests pin the behaviour.

Pure functions, no I/O. Used by registration and by password change.
"""

from __future__ import annotations

from dataclasses import dataclass

MIN_LENGTH = 7
SPECIAL_CHARACTERS = frozenset("@!#$%^&*()_+")
DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class PolicyResult:
    passed: bool
    message: str = ""
    missing: tuple[str, ...] = ()


def _has_uppercase(password: str) -> bool:
    return any(ch != ch.lower() for ch in password)


def evaluate(password: str) -> PolicyResult:
    """Check a candidate password against every rule and report all misses at once.

    The failure message names each missing class in one sentence so the
    user can fix everything in a single attempt.
    """
    missing: list[str] = []
    if len(password) < MIN_LENGTH:
        missing.append(f"at least {MIN_LENGTH} characters")
    if not _has_uppercase(password):
        missing.append("an uppercase letter")
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        missing.append("a special character (@!#$%^&*()_+)")
    if not any(ch in DIGITS for ch in password):
        missing.append("a number")

    if not missing:
        return PolicyResult(passed=True)
    message = "Password is not strong enough. Password should include " + ", ".join(missing) + "."
    return PolicyResult(passed=False, message=message, missing=tuple(missing))
