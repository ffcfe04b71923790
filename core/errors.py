"""
core/errors.py -- Domain exception taxonomy for the donation tracker.

Stores and the session manager raise these instead of leaking SQLAlchemy
exceptions to callers. The API layer maps each class to an HTTP status in one
place (api/main.py exception handlers); the CLI maps them to exit codes.

Every class carries a stable machine-readable `code` that ends up in the
error envelope, so clients never need to parse message strings.

Layer rule: no imports from api/, auth/, or donations/.
"""


class DonationTrackerError(Exception):
    """Base class for every error the core raises on purpose."""

    code = "error"
    message = "Request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class DuplicateUsername(DonationTrackerError):
    code = "duplicate_username"
    message = "A user with that username already exists."


class InvalidCredentials(DonationTrackerError):
    """Login failed.

    Raised with the same message whether the username is unknown or the
    password is wrong, so the caller cannot enumerate accounts.
    """

    code = "bad_credentials"
    message = "Invalid username or password."


class InvalidSession(DonationTrackerError):
    """The presented session token is missing, empty, or not bound to any user."""

    code = "unauthorized"
    message = "Authentication required."


class ForeignKeyViolation(DonationTrackerError):
    """A write would break a users <-> doacoes reference.

    Raised both for a donation whose owner does not exist and for a user
    delete blocked by dependent donations (ON DELETE RESTRICT).
    """

    code = "foreign_key_violation"
    message = "Referenced record does not exist or is still referenced."


class NotFound(DonationTrackerError):
    code = "not_found"
    message = "Record not found."


class PermissionDenied(DonationTrackerError):
    code = "forbidden"
    message = "Admin access required."


class ConnectivityError(DonationTrackerError):
    """The datastore could not be reached. Infrastructure failure, not a usage error."""

    code = "database_unavailable"
    message = "The database is unavailable."
