#!/usr/bin/env python3
"""
Donation tracker -- administration CLI.

Bootstraps the database and manages accounts without going through the HTTP
API. This is how the first ADMIN account comes into existence: public
self-registration only ever creates USER accounts.

Usage:
  python main.py init-db
  python main.py create-user alice --admin
  echo 's3cret' | python main.py create-user bob --password-stdin
  python main.py list-users
  python main.py delete-user bob
  python main.py --db-url sqlite:///other.db list-users

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the datastore (default: ong.db next to the project).
  LOG_LEVEL      Logging level for CLI output (default: INFO).
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.models import Role
from auth.store import UserStore
from auth.tokens import MAX_PASSWORD_BYTES, password_fits
from core.config import get_settings
from core.database import Database
from core.errors import DonationTrackerError, ForeignKeyViolation


def _read_password(from_stdin: bool) -> Optional[str]:
    """Read a new password from stdin or an interactive prompt. Returns None if unusable."""
    if from_stdin:
        password = sys.stdin.readline().rstrip("\n")
    else:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Repeat password: ") != password:
            print("  [!] Passwords do not match.")
            return None
    if not password:
        print("  [!] Password must not be empty.")
        return None
    if not password_fits(password):
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return None
    return password


def _cmd_init_db(db: Database, args: argparse.Namespace) -> int:
    db.create_schema()
    print(f"  Database ready at {db.url}")
    return 0


def _cmd_create_user(db: Database, args: argparse.Namespace) -> int:
    password = _read_password(args.password_stdin)
    if password is None:
        return 1
    role = Role.ADMIN if args.admin else Role.USER
    user = UserStore(db).register(args.username, password, role=role)
    print(f"  Created {user.role.value} '{user.username}' (id={user.id})")
    return 0


def _cmd_list_users(db: Database, args: argparse.Namespace) -> int:
    users = UserStore(db).list_users()
    if not users:
        print("  No users.")
        return 0
    for user in users:
        status = "logged in" if user.token else "logged out"
        print(f"  {user.id:>5}  {user.username:<30} {user.role.value:<6} {status}")
    return 0


def _cmd_delete_user(db: Database, args: argparse.Namespace) -> int:
    store = UserStore(db)
    user = store.get_by_username(args.username)
    if user is None:
        print(f"  [!] No user named '{args.username}'.")
        return 1
    if user.is_admin and store.count_admins() <= 1:
        print("  [!] Refusing to delete the last admin account.")
        return 1
    try:
        store.delete_user(args.username)
    except ForeignKeyViolation:
        print(f"  [!] '{args.username}' still owns donations. Delete them first.")
        return 1
    print(f"  Deleted '{args.username}'")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Donation tracker administration.",
    )
    parser.add_argument("--db-url", metavar="URL", help="SQLAlchemy database URL (overrides DATABASE_URL).")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create the database tables if missing.")
    p.set_defaults(func=_cmd_init_db)

    p = sub.add_parser("create-user", help="Create an account.")
    p.add_argument("username")
    p.add_argument("--admin", action="store_true", help="Give the account the ADMIN role.")
    p.add_argument("--password-stdin", action="store_true", help="Read the password from stdin instead of prompting.")
    p.set_defaults(func=_cmd_create_user)

    p = sub.add_parser("list-users", help="List all accounts.")
    p.set_defaults(func=_cmd_list_users)

    p = sub.add_parser("delete-user", help="Delete an account that owns no donations.")
    p.add_argument("username")
    p.set_defaults(func=_cmd_delete_user)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    db = Database(args.db_url or settings.database_url)
    try:
        # Every command needs the tables; create_schema() is idempotent.
        db.create_schema()
        return args.func(db, args)
    except DonationTrackerError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
