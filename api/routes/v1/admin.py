"""
api/routes/v1/admin.py -- Administrator routes: all donations and user management.

Routes:
  GET    /admin/donations          -- every donation, unscoped
  GET    /admin/users              -- every user account
  POST   /admin/users              -- create a user with an explicit role
  DELETE /admin/users/{username}   -- hard-delete a user

Security:
  Router-level require_admin: 401 without a valid session, 403 for USER role.
  DELETE blocks self-deletion (an admin locking themselves out).
  Deleting a user who still owns donations is refused (ON DELETE RESTRICT);
  the admin must remove or reassign those donations first.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import DonationResponse, UserCreate, UserResponse
from auth.dependencies import require_admin
from auth.models import User
from auth.store import UserStore
from core.errors import ForeignKeyViolation, NotFound
from donations.store import DonationStore

router = APIRouter(dependencies=[Depends(require_admin)])


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------


@router.get("/admin/donations", response_model=list[DonationResponse])
def list_all_donations(request: Request) -> list[DonationResponse]:
    """Return every donation in the system, across all volunteers."""
    store: DonationStore = request.app.state.donation_store
    return [DonationResponse.from_donation(d) for d in store.list_all()]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/admin/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.post("/admin/users", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Create an account with the given role (USER or ADMIN)."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.register(body.username, body.password, role=body.role)
    return UserResponse.from_user(user)


@router.delete("/admin/users/{username}", status_code=204)
def delete_user(
    request: Request,
    username: str,
    current_user: User = Depends(require_admin),
) -> Response:
    user_store: UserStore = request.app.state.user_store

    if username == current_user.username:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_delete", "message": "You cannot delete your own account."},
        )
    try:
        deleted = user_store.delete_user(username)
    except ForeignKeyViolation as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "has_donations", "message": "User still owns donations. Delete them first."},
        ) from exc
    if not deleted:
        raise NotFound("User not found.")
    return Response(status_code=204)
