#!/usr/bin/env python3
"""
AutoSales -- role-scoped user accounts and vehicle sale records over HTTP.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py create-user --name "Ada Admin" --email ada@example.com --phone 5550001111 --role admin

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Signing key for tokens, >= 32 chars (JWT_SECRET also accepted).
                 Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file next to the code.
  PORT           Listen port for `serve` (default 5000).
"""

import argparse
import getpass
import re
import sys

from auth.models import User
from auth.permissions import Role, Status
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"\d{10}")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Provision an active account directly in the database.

    This is how the first admin gets created on a fresh install when
    ADMIN_EMAIL / ADMIN_PASSWORD are not set.
    """
    if not _EMAIL_RE.match(args.email):
        print(f"  [!] '{args.email}' is not a valid email address.")
        return 1
    if not _PHONE_RE.search(args.phone):
        print(f"  [!] '{args.phone}' is not a valid phone number.")
        return 1

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("  [!] Password must be at least 6 characters.")
        return 1

    store = UserStore(get_settings().database_url)
    try:
        if store.get_by_email(args.email) is not None:
            print(f"  [!] A user with email '{args.email}' already exists.")
            return 1
        user_id = store.create_user(
            User(
                name=args.name,
                email=args.email,
                password_hash=hash_password(password),
                phone=args.phone,
                role=args.role,
                status=Status.active.value,
            )
        )
    finally:
        store.close()
    print(f"  Created {args.role} '{args.email}' (id {user_id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autosales",
        description="AutoSales backend -- user accounts and vehicle sale records.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT setting).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Create an active account directly in the database.")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--phone", required=True)
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.admin.value)
    create.add_argument("--password", default=None, help="Prompted for when omitted.")
    create.set_defaults(func=_create_user)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
