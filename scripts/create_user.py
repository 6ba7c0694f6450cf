"""Utility script to register a user profile and print a development token."""

from __future__ import annotations

import argparse
import uuid

from sqlalchemy.exc import SQLAlchemyError

from messaging_core.domain.entities import User
from messaging_core.infrastructure.database import SessionLocal, initialize_database
from messaging_core.infrastructure.repositories import UserRepository
from messaging_core.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for profile creation."""

    parser = argparse.ArgumentParser(
        description="Create or update a user profile for the messaging service.",
    )
    parser.add_argument(
        "--id",
        default=None,
        help="Identifier issued by the identity provider (random UUID by default)",
    )
    parser.add_argument("--name", required=True, help="Display name of the user")
    parser.add_argument("--avatar", default=None, help="Avatar URL (optional)")
    return parser.parse_args()


def main() -> None:
    """Store the profile and print a bearer token for it."""

    args = parse_args()
    name = args.name.strip()
    if not name:
        raise SystemExit("A non empty --name is required.")

    initialize_database()

    session = SessionLocal()
    try:
        user = UserRepository(session).upsert(
            User(id=args.id or str(uuid.uuid4()), name=name, avatar=args.avatar)
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not store the user profile: {exc}") from exc
    else:
        print(
            "User profile stored:\n"
            f"  ID: {user.id}\n"
            f"  Name: {user.name}\n"
            f"  Token: {create_access_token({'sub': user.id})}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
