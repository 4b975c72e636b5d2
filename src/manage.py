"""Storefront management CLI.

Creates and drops the order database schema, and issues bearer tokens for
local development.

Usage:
    python src/manage.py setup-db                  # Create all tables
    python src/manage.py drop-db                   # Drop all tables
    python src/manage.py issue-token --owner u-1   # Print a bearer token for u-1
"""

import argparse
import sys

from ordering.utils.db import create_db_engine, drop_db, setup_db
from shared.auth import issue_token
from shared.config import Settings


def setup_database(settings: Settings) -> None:
    print(f"Creating order schema in {settings.database_url}...")
    setup_db(create_db_engine(settings.database_url))
    print("Done.")


def drop_database(settings: Settings) -> None:
    print(f"Dropping order schema in {settings.database_url}...")
    drop_db(create_db_engine(settings.database_url))
    print("Done.")


def print_token(settings: Settings, owner_id: str) -> None:
    print(issue_token(owner_id, settings.jwt_secret.get_secret_value()))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    token_parser = subparsers.add_parser("issue-token", help="Issue a bearer token for a customer")
    token_parser.add_argument("--owner", required=True, help="Customer id to put in the token")

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "setup-db":
        setup_database(settings)
    elif args.command == "drop-db":
        if settings.is_production:
            print("Refusing to drop the production schema.", file=sys.stderr)
            sys.exit(1)
        drop_database(settings)
    elif args.command == "issue-token":
        print_token(settings, args.owner)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
