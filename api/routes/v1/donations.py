"""
api/routes/v1/donations.py -- Donation ledger routes for the REST API.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /donations                    -- register a donation owned by the caller
  GET    /donations                    -- the caller's own donations
  GET    /donations/{donation_id}      -- one donation
  PUT    /donations/{donation_id}      -- full replace of the mutable fields
  PATCH  /donations/{donation_id}/received  -- mark as received
  DELETE /donations/{donation_id}      -- remove

Ownership:
  Volunteers (role USER) only ever see and modify their own rows. Admins may
  act on any row. A volunteer asking for someone else's donation gets the
  same 404 as for a missing id, so ids of other users' rows are not
  confirmed. Writes pass the caller's id down to the store, which puts it in
  the WHERE clause of the same statement.

The admin-wide listing lives in api/routes/v1/admin.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.models import DonationCreate, DonationResponse, DonationUpdate
from auth.dependencies import get_current_user
from auth.models import User
from core.errors import NotFound
from donations.models import Donation
from donations.store import DonationStore

# All donation routes require authentication.
# Router-level dependency applies to every route registered on this router;
# handlers that need the User itself still declare it explicitly.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _owner_scope(user: User) -> Optional[int]:
    """Owner filter for store writes: None (unscoped) for admins, the user's id otherwise."""
    return None if user.is_admin else user.id


def _get_visible(store: DonationStore, donation_id: int, user: User) -> Donation:
    donation = store.get(donation_id)
    if donation is None or (not user.is_admin and donation.owner_id != user.id):
        raise NotFound("Donation not found.")
    return donation


# ---------------------------------------------------------------------------
# POST /donations -- register a new donation
# ---------------------------------------------------------------------------


@router.post("/donations", response_model=DonationResponse, status_code=201)
def create_donation(
    request: Request,
    body: DonationCreate,
    current_user: User = Depends(get_current_user),
) -> DonationResponse:
    """Register a donation owned by the caller. received always starts False."""
    store: DonationStore = request.app.state.donation_store
    donation = Donation(
        description=body.description,
        quantity=body.quantity,
        destination=body.destination,
        owner_id=current_user.id,
    )
    donation.id = store.add(donation)
    return DonationResponse.from_donation(donation)


# ---------------------------------------------------------------------------
# GET /donations -- the caller's donations
# ---------------------------------------------------------------------------


@router.get("/donations", response_model=list[DonationResponse])
def list_my_donations(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> list[DonationResponse]:
    """Return only the donations the caller registered, admins included."""
    store: DonationStore = request.app.state.donation_store
    return [DonationResponse.from_donation(d) for d in store.list_by_owner(current_user.id)]


@router.get("/donations/{donation_id}", response_model=DonationResponse)
def get_donation(
    request: Request,
    donation_id: int,
    current_user: User = Depends(get_current_user),
) -> DonationResponse:
    store: DonationStore = request.app.state.donation_store
    return DonationResponse.from_donation(_get_visible(store, donation_id, current_user))


# ---------------------------------------------------------------------------
# PUT / PATCH -- updates
# ---------------------------------------------------------------------------


@router.put("/donations/{donation_id}", response_model=DonationResponse)
def update_donation(
    request: Request,
    donation_id: int,
    body: DonationUpdate,
    current_user: User = Depends(get_current_user),
) -> DonationResponse:
    """Replace description, quantity, destination and received. The owner never changes."""
    store: DonationStore = request.app.state.donation_store
    existing = _get_visible(store, donation_id, current_user)
    updated = Donation(
        id=existing.id,
        owner_id=existing.owner_id,
        description=body.description,
        quantity=body.quantity,
        destination=body.destination,
        received=body.received,
    )
    if not store.update(updated, owner_id=_owner_scope(current_user)):
        # Deleted between the read and the write.
        raise NotFound("Donation not found.")
    return DonationResponse.from_donation(updated)


@router.patch("/donations/{donation_id}/received", response_model=DonationResponse)
def mark_donation_received(
    request: Request,
    donation_id: int,
    current_user: User = Depends(get_current_user),
) -> DonationResponse:
    """Record that the donated item reached the organisation's stock."""
    store: DonationStore = request.app.state.donation_store
    if not store.mark_received(donation_id, owner_id=_owner_scope(current_user)):
        raise NotFound("Donation not found.")
    return DonationResponse.from_donation(_get_visible(store, donation_id, current_user))


# ---------------------------------------------------------------------------
# DELETE /donations/{donation_id}
# ---------------------------------------------------------------------------


@router.delete("/donations/{donation_id}", status_code=204)
def delete_donation(
    request: Request,
    donation_id: int,
    current_user: User = Depends(get_current_user),
) -> Response:
    store: DonationStore = request.app.state.donation_store
    if not store.delete(donation_id, owner_id=_owner_scope(current_user)):
        raise NotFound("Donation not found.")
    return Response(status_code=204)
