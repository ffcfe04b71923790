"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Clients present the opaque session token from POST /auth/login in an
Authorization: Bearer <token> header. The token is resolved against the
users table on every request (no in-process session cache).

get_session_token() extracts the raw token (or None).
get_current_user() resolves it via SessionManager.authenticate() and lets
  InvalidSession propagate; api/main.py turns that into HTTP 401.
require_admin() wraps get_current_user() and raises PermissionDenied (403)
  for non-admin users.

Layer rule: no imports from api/ or donations/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.models import User
from auth.sessions import SessionManager


def get_session_token(request: Request) -> str | None:
    """Return the Bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(request: Request, token: str | None = Depends(get_session_token)) -> User:
    """Require authentication. Raises InvalidSession if the token is missing or unknown.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    sessions: SessionManager = request.app.state.sessions
    return sessions.authenticate(token)


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require the ADMIN role. 401 if unauthenticated, 403 if not admin."""
    return SessionManager.require_admin(user)
