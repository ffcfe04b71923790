"""
auth/tokens.py -- Password hashing and session token utilities.

Security design decisions:
  Passwords: bcrypt, used directly. Every hash embeds its own random salt and cost, so two hashes
       of the same password differ and verification needs nothing but the hash.
       The cost factor comes from Settings.bcrypt_rounds.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy from the
       OS CSPRNG. Tokens are opaque -- they carry no claims and mean nothing
       without the users.token column that binds them to an account. They are
       stored as-is so the store can look them up by equality.

  _DUMMY_HASH enables timing equalization in SessionManager.login() so
       response time does not reveal whether a username exists.

Layer rule: no imports from api/ or donations/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets

import bcrypt

from core.config import get_settings

_settings = get_settings()

# 32 random bytes -> 43 URL-safe characters.
_TOKEN_BYTES = 32

# bcrypt input limit, counted in UTF-8 bytes rather than characters.
MAX_PASSWORD_BYTES = 72


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def password_fits(plain: str) -> bool:
    """Return True if bcrypt accepts the password without truncating it."""
    return len(plain.encode("utf-8")) <= MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError for passwords longer than MAX_PASSWORD_BYTES once
    encoded. Older bcrypt releases truncate such input silently and newer ones
    reject it, so the check happens here for both. Callers validate with
    password_fits() first.
    """
    if not password_fits(plain):
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A missing or malformed hash is a mismatch, not an error: bcrypt raises
    ValueError for an unparseable salt and that becomes False here. So is a
    password too long to have been hashed in the first place.
    """
    if not hashed or not password_fits(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("donationtracker_timing_dummy")


def burn_dummy_check(plain: str) -> None:
    """Spend one bcrypt verification against a throwaway hash.

    Called when the username does not exist so an unknown account costs the
    same as a wrong password.
    """
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a fresh unpredictable session token."""
    return secrets.token_urlsafe(_TOKEN_BYTES)
