"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as donations/store.py).
UserStore is the repository; _row_to_user is the mapper. Session and route
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Username uniqueness is enforced by the UNIQUE constraint on users.username,
  never by a get-then-insert pre-check: two concurrent registrations with the
  same name race, and only the constraint decides the winner reliably. The
  loser's IntegrityError becomes DuplicateUsername.

  Token lookups with an empty token return None without querying. An ORM-style
  comparison against None would compile to "token IS NULL" and match every
  logged-out user.

No caching: every method opens a short-lived connection and reads the
current row, so there is nothing to invalidate after logout or delete.

Layer rule: no imports from api/ or donations/.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.tokens import hash_password
from core.database import Database, is_foreign_key_error, users
from core.errors import DuplicateUsername, ForeignKeyViolation


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(db)
        store.register("admin", "secret", role=Role.ADMIN)
        user = store.get_by_username("admin")
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, role: Role = Role.USER) -> User:
        """Hash the password and insert a new user. Returns the stored User.

        Raises DuplicateUsername if the username is taken, including when a
        concurrent registration wins the race. Raises ValueError for an empty
        username.
        """
        if not username:
            raise ValueError("username must not be empty")
        password_hash = hash_password(password)
        try:
            with self.db.connect() as conn:
                result = conn.execute(
                    users.insert().values(username=username, password=password_hash, role=Role(role).value)
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateUsername() from exc
        return User(
            id=result.inserted_primary_key[0],
            username=username,
            password_hash=password_hash,
            role=Role(role),
        )

    def delete_user(self, username: str) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Raises ForeignKeyViolation if donations still reference the user
        (ON DELETE RESTRICT); nothing is removed in that case. Last-admin and
        self-delete checks are the caller's responsibility.
        """
        try:
            with self.db.connect() as conn:
                result = conn.execute(users.delete().where(users.c.username == username))
                conn.commit()
        except IntegrityError as exc:
            if not is_foreign_key_error(exc):
                raise
            raise ForeignKeyViolation("User still owns donations.") from exc
        return result.rowcount > 0

    def set_token(self, username: str, token: str | None) -> bool:
        """Overwrite the session slot unconditionally. None logs the user out.

        Returns True if the user exists.
        """
        with self.db.connect() as conn:
            result = conn.execute(users.update().where(users.c.username == username).values(token=token))
            conn.commit()
        return result.rowcount > 0

    def assign_token(self, user_id: int, expected_hash: str, token: str) -> bool:
        """Bind a session token to a user, provided the password hash is unchanged.

        The WHERE clause re-checks the hash that login just verified, so the
        check and the write happen in one statement. Two concurrent logins for
        the same account both succeed and the last write wins; a login whose
        row was deleted or re-keyed in between writes nothing and returns False.
        """
        with self.db.connect() as conn:
            result = conn.execute(
                users.update()
                .where((users.c.id == user_id) & (users.c.password == expected_hash))
                .values(token=token)
            )
            conn.commit()
        return result.rowcount > 0

    def clear_token(self, token: str | None) -> bool:
        """Log out whichever user holds this token. Returns True if one did."""
        if not token:
            return False
        with self.db.connect() as conn:
            result = conn.execute(users.update().where(users.c.token == token).values(token=None))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.db.connect() as conn:
            row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.db.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_token(self, token: str | None) -> User | None:
        """Resolve a session token to its user. Returns None for empty or unknown tokens."""
        if not token:
            return None
        with self.db.connect() as conn:
            row = conn.execute(users.select().where(users.c.token == token)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by username. Admin-only operation."""
        with self.db.connect() as conn:
            rows = conn.execute(users.select().order_by(users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_admins(self) -> int:
        """Return the number of ADMIN accounts. Used to protect the last admin."""
        with self.db.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(users).where(users.c.role == Role.ADMIN.value)
            ).scalar()
        return count or 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password,
        role=Role(row.role),
        token=row.token,
    )
