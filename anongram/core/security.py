"""Security helpers (code hashing and generation)."""

from __future__ import annotations

import secrets

from argon2 import PasswordHasher, exceptions as argon_exc

_ph = PasswordHasher()
_PREFIX = "argon2$"

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Return a 6-digit numeric code in [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def hash_code(code: str) -> str:
    """Hash a one-time code with Argon2, prefixed for detection."""
    return f"{_PREFIX}{_ph.hash(code)}"


def verify_code_hash(code: str, stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    if not stored.startswith(_PREFIX) or not code:
        return False
    try:
        return _ph.verify(stored[len(_PREFIX):], code)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def code_in_allow_list(code: str | None, allowed: tuple[str, ...]) -> bool:
    """Exact match of ``code`` against an allow-list, compared in constant time."""
    if not code:
        return False
    return any(secrets.compare_digest(code, entry) for entry in allowed)


def new_session_token() -> str:
    return secrets.token_urlsafe(32)
