#!/usr/bin/env python3
"""
Set a new password for an existing user.

Usage: python -m identity_service.scripts.update_password <email> <new_password>
"""
import asyncio
import sys
from typing import List, Optional

from pydantic import ValidationError

from identity_service.auth.passwords import PasswordHasher
from identity_service.config import Settings
from identity_service.database import create_engine, create_session_factory
from identity_service.users.service import UserService


async def update_password(settings: Settings, email: str, new_password: str) -> bool:
    """Re-hash and store the password. Returns False if no user has this email."""
    engine = create_engine(settings.database_url)
    try:
        async with create_session_factory(engine)() as session:
            service = UserService(session, PasswordHasher(settings.hash_work_factor))
            return await service.set_password(email, new_password)
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("Usage: python -m identity_service.scripts.update_password <email> <new_password>")
        return 2

    email, new_password = args
    try:
        updated = asyncio.run(update_password(settings or Settings.from_env(), email, new_password))
    except ValidationError as e:
        print(f"Invalid password: {e.errors()[0]['msg']}")
        return 1

    if not updated:
        print("No user found with that email.")
        return 1
    print("Password updated successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
