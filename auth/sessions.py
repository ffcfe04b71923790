"""
auth/sessions.py -- Session lifecycle: login, token resolution, logout.

Each user is in one of two states:
  LoggedOut -- users.token IS NULL
  LoggedIn  -- users.token holds an opaque random token

login() moves LoggedOut -> LoggedIn (or replaces the token of an already
logged-in user, invalidating the previous one). logout() moves back. There is
no expiry timer and no separate "revoked" state: a cleared token is simply
unknown to authenticate().

Security:
  login() always runs bcrypt, against _DUMMY_HASH when the username does not
  exist, and raises the same InvalidCredentials for every failure cause. Both
  the response and its timing are identical for "no such user" and "wrong
  password".

  authenticate() raises one InvalidSession for empty, unknown and revoked
  tokens alike.

Layer rule: no imports from api/ or donations/.
"""

from __future__ import annotations

import logging

from auth.models import User
from auth.store import UserStore
from auth.tokens import burn_dummy_check, generate_session_token, verify_password
from core.errors import InvalidCredentials, InvalidSession, PermissionDenied

logger = logging.getLogger("donationtracker.auth")


class SessionManager:
    """Issues, resolves and revokes session tokens against a UserStore.

    Usage:
        sessions = SessionManager(user_store)
        token = sessions.login("bob", "pw123")
        user = sessions.authenticate(token)
        sessions.logout(token)
    """

    def __init__(self, store: UserStore) -> None:
        self.store = store

    def login(self, username: str, password: str) -> str:
        """Verify credentials and return a fresh session token.

        Raises InvalidCredentials on any failure.
        """
        token, _user = self.open_session(username, password)
        return token

    def open_session(self, username: str, password: str) -> tuple[str, User]:
        """Same as login(), but also return the user the token was bound to.

        The returned User reflects the row as it was verified, with the new
        token filled in, so callers need no second lookup.
        """
        user = self.store.get_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt.
            burn_dummy_check(password)
            logger.warning("Failed login attempt")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise InvalidCredentials()

        token = generate_session_token()
        if not self.store.assign_token(user.id, user.password_hash, token):
            # Row deleted or password changed between lookup and assignment.
            logger.warning("Failed login attempt (account changed during login)")
            raise InvalidCredentials()
        logger.info("User %s logged in", user.username)
        user.token = token
        return token, user

    def authenticate(self, token: str | None) -> User:
        """Return the user bound to this token. Raises InvalidSession otherwise."""
        user = self.store.get_by_token(token)
        if user is None:
            raise InvalidSession()
        return user

    def logout(self, token: str | None) -> None:
        """Revoke the token. Unknown, empty or already-revoked tokens are a no-op."""
        if self.store.clear_token(token):
            logger.info("Session revoked")

    @staticmethod
    def require_admin(user: User) -> User:
        """Return the user if they are an admin. Raises PermissionDenied otherwise."""
        if not user.is_admin:
            raise PermissionDenied()
        return user
