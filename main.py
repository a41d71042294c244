#!/usr/bin/env python3
"""
Player Accounts -- operator command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 3000
  python main.py create-admin --username root --email root@example.com

Environment variables (see core/config.py):
  SECRET_KEY    Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL of the account database (default: sqlite:///./accounts.db).
  DEBUG         true to auto-generate a throwaway SECRET_KEY and include error detail.

create-admin is the only way to create an admin account; the HTTP API only
ever registers players.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.errors import AuthError
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenConfig, TokenService
from core.config import Settings, get_settings


def build_service(settings: Settings) -> AccountService:
    """Wire an AccountService the same way the API lifespan does."""
    store = AccountStore(settings.database_url)
    return AccountService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=TokenService(
            TokenConfig(secret_key=settings.secret_key, expire_seconds=settings.token_expire_seconds)
        ),
        min_password_length=settings.min_password_length,
    )


def _read_password(provided: Optional[str]) -> str:
    if provided:
        return provided
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return first


def create_admin(args: argparse.Namespace, settings: Settings) -> int:
    service = build_service(settings)
    try:
        account = service.create_admin(args.username, args.email, _read_password(args.password))
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        service.store.close()
    print(f"  Admin account created: id={account.id} username={account.username}")
    return 0


def serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="player-accounts",
        description="Account registration and bearer-token authentication service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  DEBUG=true python main.py serve --reload
  python main.py create-admin --username root --email root@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Bind port (default: 3000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    admin_parser = sub.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--username", required=True)
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument(
        "--password",
        default=None,
        help="Password for the new account. Prompted for when omitted (preferred: keeps it out of shell history).",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = get_settings()
    except ValueError as exc:
        print(f"  [!] Configuration error: {exc}")
        return 2

    if args.command == "serve":
        return serve(args, settings)
    return create_admin(args, settings)


if __name__ == "__main__":
    sys.exit(main())
