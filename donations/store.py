"""
donations/store.py -- SQLAlchemy-backed persistence layer for the donation ledger.

Pattern: Repository + Data Mapper. DonationStore is the repository; the
_row_to_donation function is the mapper (raw DB row -> Donation). Every read
path goes through it, so the field <-> column mapping lives in one place.

Ownership:
  The store does not know who is asking. list_by_owner() is how callers scope
  a volunteer to their own rows; list_all() is unscoped and meant for admins.
  update(), mark_received() and delete() take an optional owner_id: when
  given, the owner is part of the WHERE clause, so a volunteer who guesses
  another volunteer's donation id simply matches zero rows (IDOR guard in the
  same statement, no read-then-write window).

Referential integrity:
  doacoes.userId REFERENCES users.id. add() with an unknown owner fails inside
  the INSERT and is reported as ForeignKeyViolation; no row is written.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = DonationStore(db)
    donation_id = store.add(Donation(description="rice", quantity="5kg", destination="shelter", owner_id=1))
    mine = store.list_by_owner(1)
    store.mark_received(donation_id)
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from core.database import Database, donations, is_foreign_key_error
from core.errors import ForeignKeyViolation
from donations.models import Donation


class DonationStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, donation: Donation) -> int:
        """Insert a new donation and return its assigned database ID.

        Raises ForeignKeyViolation if owner_id does not reference a user.
        """
        try:
            with self.db.connect() as conn:
                result = conn.execute(
                    donations.insert().values(
                        descricao=donation.description,
                        quantidade=donation.quantity,
                        destino=donation.destination,
                        recebido=bool(donation.received),
                        userId=donation.owner_id,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            if not is_foreign_key_error(exc):
                raise
            raise ForeignKeyViolation(f"User {donation.owner_id} does not exist.") from exc
        return result.inserted_primary_key[0]

    def update(self, donation: Donation, owner_id: Optional[int] = None) -> bool:
        """Replace description, quantity, destination and received by id.

        The owner is not updatable. Returns True if a row was updated, False if
        the id was not found (or, with owner_id, belongs to someone else).
        """
        stmt = donations.update().where(donations.c.id == donation.id)
        if owner_id is not None:
            stmt = stmt.where(donations.c.userId == owner_id)
        with self.db.connect() as conn:
            result = conn.execute(
                stmt.values(
                    descricao=donation.description,
                    quantidade=donation.quantity,
                    destino=donation.destination,
                    recebido=bool(donation.received),
                )
            )
            conn.commit()
        return result.rowcount > 0

    def mark_received(self, donation_id: int, owner_id: Optional[int] = None) -> bool:
        """Flip received to True. Returns False if no matching row exists.

        Marking an already-received donation again is a successful no-op.
        """
        stmt = donations.update().where(donations.c.id == donation_id)
        if owner_id is not None:
            stmt = stmt.where(donations.c.userId == owner_id)
        with self.db.connect() as conn:
            result = conn.execute(stmt.values(recebido=True))
            conn.commit()
        return result.rowcount > 0

    def delete(self, donation_id: int, owner_id: Optional[int] = None) -> bool:
        """Permanently remove a donation. Returns True if a row was removed."""
        stmt = donations.delete().where(donations.c.id == donation_id)
        if owner_id is not None:
            stmt = stmt.where(donations.c.userId == owner_id)
        with self.db.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, donation_id: int) -> Optional[Donation]:
        """Fetch a single donation by ID. Returns None if not found."""
        with self.db.connect() as conn:
            row = conn.execute(donations.select().where(donations.c.id == donation_id)).fetchone()
        return _row_to_donation(row) if row is not None else None

    def list_by_owner(self, owner_id: int) -> list[Donation]:
        """Return the donations registered by one user, oldest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                donations.select().where(donations.c.userId == owner_id).order_by(donations.c.id)
            ).fetchall()
        return [_row_to_donation(r) for r in rows]

    def list_all(self) -> list[Donation]:
        """Return every donation, oldest first. Admin-only operation."""
        with self.db.connect() as conn:
            rows = conn.execute(donations.select().order_by(donations.c.id)).fetchall()
        return [_row_to_donation(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_donation(row) -> Donation:
    return Donation(
        id=row.id,
        description=row.descricao,
        quantity=row.quantidade,
        destination=row.destino,
        received=bool(row.recebido),
        owner_id=row.userId,
    )
