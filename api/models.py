"""
API request and response models for the donation tracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
donations/models.py, which own the internal domain representation. Route
handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Role, User
from auth.tokens import MAX_PASSWORD_BYTES, password_fits
from donations.models import Donation

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Characters, checked by Field. Multi-byte input can still exceed bcrypt's
# byte limit, which _check_password_bytes() catches.
_MAX_PASSWORD_LENGTH = MAX_PASSWORD_BYTES
_USERNAME_PATTERN = r"^\S+$"


def _check_password_bytes(value: str) -> str:
    if not password_fits(value):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register. Self-registration always yields role USER.

    Passwords are taken verbatim; surrounding whitespace is part of the secret.
    """

    username: str = Field(min_length=1, max_length=255, pattern=_USERNAME_PATTERN)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    username: str
    role: Role


class UserCreate(BaseModel):
    """Request body for POST /api/v1/admin/users. Admins may choose the role."""

    username: str = Field(min_length=1, max_length=255, pattern=_USERNAME_PATTERN)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)
    role: Role = Role.USER

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash or session token."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: Role
    logged_in: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, username=user.username, role=user.role, logged_in=user.token is not None)


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------


class DonationCreate(BaseModel):
    """Request body for POST /api/v1/donations.

    The owner is always the caller and received always starts False, so
    neither is accepted from the client.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(min_length=1, max_length=500)
    quantity: Optional[str] = Field(default=None, max_length=100)
    destination: Optional[str] = Field(default=None, max_length=255)


class DonationUpdate(BaseModel):
    """Request body for PUT /api/v1/donations/{id} -- full replace of the mutable fields."""

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(min_length=1, max_length=500)
    quantity: Optional[str] = Field(default=None, max_length=100)
    destination: Optional[str] = Field(default=None, max_length=255)
    received: bool = False


class DonationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    quantity: Optional[str]
    destination: Optional[str]
    received: bool
    owner_id: int

    @classmethod
    def from_donation(cls, donation: Donation) -> "DonationResponse":
        """Build a DonationResponse from a domain Donation.

        Factory Method -- the mapping lives here, colocated with the output
        model, rather than scattered across route handlers.
        """
        return cls(
            id=donation.id,
            description=donation.description,
            quantity=donation.quantity,
            destination=donation.destination,
            received=donation.received,
            owner_id=donation.owner_id,
        )
