"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in donations/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/ or donations/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Access level. Stored in users.role as the member value."""

    USER = "USER"
    ADMIN = "ADMIN"


@dataclass
class User:
    """A registered account (volunteer or administrator).

    password_hash is the bcrypt output from auth.tokens.hash_password(); the
    plaintext is never kept anywhere.

    token is the current opaque session token, or None when the user is logged
    out. There is no expiry -- a token lives until logout or the next login.
    """

    username: str
    password_hash: str
    role: Role = Role.USER
    id: int | None = None
    token: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
