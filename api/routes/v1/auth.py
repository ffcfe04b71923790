"""
api/routes/v1/auth.py -- Registration, session and identity REST endpoints.

Routes:
  POST /api/v1/auth/register   -- self-registration (role USER)
  POST /api/v1/auth/login      -- password login; returns an opaque session token
  POST /api/v1/auth/logout     -- revokes the presented token; always 200
  GET  /api/v1/auth/me         -- current user info (requires auth)

Security:
  POST /login and POST /register are rate-limited per IP.
  SessionManager.login() provides timing equalization -- use it, never inline
  get_by_username() + verify_password().
  Login responses carry Cache-Control: no-store so the token never lands in
  an intermediary cache.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_user, get_session_token
from auth.models import Role, User
from auth.sessions import SessionManager
from auth.store import UserStore
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/register: public -- volunteers sign themselves up
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:   public -- revoking an unknown token is a no-op
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.register_rate_limit)
@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a volunteer account. The role is always USER.

    A taken username raises DuplicateUsername (409) straight from the store's
    UNIQUE constraint.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.register(body.username, body.password, role=Role.USER)
    return UserResponse.from_user(user)


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a session token.

    Wrong username and wrong password produce the same InvalidCredentials
    (401 bad_credentials).
    """
    sessions: SessionManager = request.app.state.sessions
    token, user = sessions.open_session(body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            username=user.username,
            role=user.role,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout(request: Request, token: str | None = Depends(get_session_token)) -> dict:
    """Revoke the presented session token. Idempotent."""
    sessions: SessionManager = request.app.state.sessions
    sessions.logout(token)
    return {"message": "Logged out."}


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    return UserResponse.from_user(current_user)
