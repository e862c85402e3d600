#!/usr/bin/env python3
"""
DocKeep -- management CLI.

Usage:
  python main.py create-admin --email admin@example.com
  python main.py create-admin --email admin@example.com --password 's3cret!'
  python main.py serve --host 0.0.0.0 --port 8000

The first admin has to come from somewhere: POST /api/v1/users is admin-only
and self-registration always grants USER. create-admin creates the account,
or promotes and re-activates an existing one.

Environment variables:
  SECRET_KEY      Required unless DEBUG=true (see core/config.py).
  DATABASE_URL    SQLAlchemy URL, default sqlite:///dockeep.db
  ADMIN_PASSWORD  Used by create-admin when --password is not given.
"""

import argparse
import asyncio
import getpass
import os
import sys
from typing import Optional

from auth.admin import UserAdminService
from auth.models import Role
from auth.passwords import PasswordHasher
from auth.store import SqlCredentialStore
from core.config import get_settings
from core.db import make_engine
from core.errors import Err
from documents.store import DocumentStore


async def create_admin(email: str, password: str) -> int:
    """Create or promote an admin account. Returns a process exit code."""
    settings = get_settings()
    engine = make_engine(settings.database_url)
    try:
        users = SqlCredentialStore(engine=engine)
        admin = UserAdminService(users, DocumentStore(engine=engine), PasswordHasher(settings), settings)
        existing = await users.find_by_email(email.strip().lower())
        if existing is None:
            result = await admin.create_user(email, password, roles=[Role.ADMIN, Role.USER])
            if isinstance(result, Err):
                print(f"  [!] {result.message}")
                return 1
            print(f"  Created admin {result.value.email} (id: {result.value.id})")
            return 0
        if Role.ADMIN not in existing.roles:
            await users.update(existing.id, roles=existing.roles | {Role.ADMIN})
        if not existing.is_active:
            await users.update(existing.id, is_active=True)
        print(f"  {existing.email} is an active admin (id: {existing.id})")
        return 0
    finally:
        engine.dispose()


def _resolve_password(arg: Optional[str]) -> str:
    if arg:
        return arg
    env_password = os.environ.get("ADMIN_PASSWORD")
    if env_password:
        return env_password
    first = getpass.getpass("Password: ")
    if first != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return first


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="dockeep",
        description="DocKeep management commands.",
    )
    sub = parser.add_subparsers(dest="command")

    admin_parser = sub.add_parser("create-admin", help="Create or promote an admin account")
    admin_parser.add_argument("--email", required=True, help="Admin email address")
    admin_parser.add_argument(
        "--password",
        default=None,
        help="Admin password (falls back to ADMIN_PASSWORD, then an interactive prompt)",
    )

    serve_parser = sub.add_parser("serve", help="Run the API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    args = parser.parse_args()

    if args.command == "create-admin":
        sys.exit(asyncio.run(create_admin(args.email, _resolve_password(args.password))))
    elif args.command == "serve":
        import uvicorn

        uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
