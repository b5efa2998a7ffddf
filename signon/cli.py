"""Command-line interface for the signon authentication service."""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

import anyio

from .application import build_service
from .config import Settings, load_settings
from .database import Database
from .errors import AuthError

logger = logging.getLogger("signon.cli")

_MIN_CLI_PASSWORD_LENGTH = 12


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="signon authentication service")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (defaults to SIGNON_CONFIG when set)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")
    subparsers.add_parser("list-users", help="List registered accounts")

    create_parser = subparsers.add_parser("create-user", help="Register a new account")
    create_parser.add_argument("email", help="Unique email address for sign-in")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=9595,
        help="Port for the HTTP API (default: 9595)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list-users", "create-user"}

    global_args: list[str] = []
    if args_list[:1] == ["--config"] and len(args_list) >= 2:
        global_args, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*global_args, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*global_args, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*global_args, *args_list])


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path, timeout=settings.storage_timeout)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, database: Database, host: str, port: int) -> None:
    from .application import create_application
    import uvicorn

    logger.info("Starting signon API on http://%s:%s (env=%s)", host, port, settings.env)
    app = create_application(settings=settings, database=database)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _list_users(database: Database) -> None:
    users = database.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Email':<40}  Created")
    print("-" * 72)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>4}  {user.email:<40}  {created}")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {_MIN_CLI_PASSWORD_LENGTH} characters): ")
        if len(password) < _MIN_CLI_PASSWORD_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _create_user(settings: Settings, database: Database, email: str) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.", file=sys.stderr)
        return 1

    service = build_service(settings, database=database)
    try:
        result = anyio.run(functools.partial(service.sign_up, email, password))
    except AuthError as exc:
        print(f"Failed to create user: {exc.public_message}", file=sys.stderr)
        return 1

    print(f"Created user #{result.user.id}: <{result.user.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "create-user":
        return _create_user(settings, database, args.email)
    elif args.command == "list-users":
        _list_users(database)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


__all__ = ["main"]
