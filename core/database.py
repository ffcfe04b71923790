"""
core/database.py -- Storage handle and schema bootstrap for the donation tracker.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
donations/models.py remain the authoritative domain representation. Swapping
SQLite for PostgreSQL is a connection string change, not a rewrite.

Pattern: one Database object per process, injected into every store
constructor (UserStore, DonationStore). Stores never build engines or read
config themselves, so tests can hand them an isolated in-memory database.

Schema:
  users   -- one row per account; token holds the current session (NULL = logged out)
  doacoes -- one row per donation; userId references users.id

  Table and column names match the legacy ong.db layout, so an
  existing ong.db opens without migration.

Referential integrity:
  SQLite ignores FOREIGN KEY clauses unless PRAGMA foreign_keys=ON is issued
  on every connection. _set_sqlite_pragmas() does that from a connect event.
  Deleting a user that still owns donations is rejected (ON DELETE RESTRICT).

Layer rule: core/ may not import from api/, auth/, or donations/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    false,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from core.config import get_settings
from core.errors import ConnectivityError

logger = logging.getLogger("donationtracker.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash, never plaintext
    Column("role", String(10), nullable=False, server_default="USER"),
    # UNIQUE so no two users can ever hold the same live token. NULLs are
    # distinct under UNIQUE, so any number of users may be logged out.
    Column("token", Text, unique=True),
)

donations = Table(
    "doacoes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("descricao", Text, nullable=False),
    Column("quantidade", Text),  # free-form label, e.g. "5kg", "2 boxes"
    Column("destino", Text),
    Column("recebido", Boolean, nullable=False, server_default=false()),
    Column("userId", Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign key enforcement and WAL journal mode.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. WAL lets readers proceed while a write is in
    flight; in-memory databases silently keep their own journal mode.
    """
    dbapi_conn.execute("PRAGMA foreign_keys=ON")
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Storage handle
# ---------------------------------------------------------------------------


class Database:
    """Connection factory shared by every store.

    Usage:
        db = Database()                    # DATABASE_URL from settings
        db = Database("sqlite:///:memory:")
        db.create_schema()
        with db.connect() as conn:
            conn.execute(...)
        db.close()

    The engine connects lazily; constructing a Database never touches the
    datastore, so an unreachable store only surfaces on the first connect().
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.url = db_url or get_settings().database_url
        connect_args: dict = {}
        if self.url.startswith("sqlite"):
            # FastAPI runs sync route handlers in a thread pool, so the same
            # pooled connection may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(self.url, connect_args=connect_args)
        if self.url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a short-lived connection, closed when the block exits.

        Raises ConnectivityError if no connection can be acquired, or if a
        statement inside the block fails with OperationalError (locked or
        read-only file, disk I/O error, dropped server connection). Both are
        logged here because they are infrastructure problems the operator
        needs to see, unlike the usage errors stores raise. IntegrityError
        passes through untouched for the stores to translate.
        """
        try:
            conn = self.engine.connect()
        except OperationalError as exc:
            logger.error("Could not open a database connection: %s", exc.orig)
            raise ConnectivityError() from exc
        with conn:
            try:
                yield conn
            except OperationalError as exc:
                logger.error("Database operation failed: %s", exc.orig)
                raise ConnectivityError() from exc

    def create_schema(self) -> None:
        """Create the users and doacoes tables if they do not exist.

        Idempotent -- safe to call on every startup.
        """
        with self.connect() as conn:
            metadata.create_all(conn, checkfirst=True)
            conn.commit()
        logger.info("Database schema ready")

    def ping(self) -> bool:
        """Return True if the datastore answers a trivial query."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (ConnectivityError, SQLAlchemyError):
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


def is_foreign_key_error(exc: IntegrityError) -> bool:
    """Return True if an IntegrityError came from a FOREIGN KEY constraint.

    Matches SQLite ("FOREIGN KEY constraint failed") and PostgreSQL
    ("violates foreign key constraint") messages.
    """
    return "foreign key" in str(exc.orig).lower()
