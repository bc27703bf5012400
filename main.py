#!/usr/bin/env python3
"""
Nori -- password authentication with server-side sessions.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py create-user alice

Environment variables (see core/config.py):
  DATABASE_URL          SQLAlchemy URL. Default: SQLite file under auth/.
  SESSION_TTL_SECONDS   Lifetime of sessions issued without "remember". Default: 3600.
  SESSION_COOKIE_NAME   Default: session.
"""

import argparse
import getpass
import sys

from auth.credentials import CredentialStore
from auth.errors import AuthError
from auth.schema import create_db_engine
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Register a user from the terminal. The password is prompted for, never taken from argv."""
    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    engine = create_db_engine(get_settings().database_url)
    try:
        user_id = CredentialStore(engine).register(args.username, password)
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        engine.dispose()

    print(f"  Created user '{args.username}' (id {user_id}).")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="nori",
        description="Password authentication with server-side, cookie-bound sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  DATABASE_URL=sqlite:///./nori.db python main.py create-user alice
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Bind port (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    create_user = subparsers.add_parser("create-user", help="Register a user from the terminal")
    create_user.add_argument("username", help="Username to register (case-sensitive)")
    create_user.set_defaults(func=_create_user)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
