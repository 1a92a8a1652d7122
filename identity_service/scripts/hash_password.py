#!/usr/bin/env python3
"""
Print a bcrypt digest for a password.

Usage: python -m identity_service.scripts.hash_password <password>
"""
import sys
from typing import List, Optional

from identity_service.auth.passwords import PasswordHasher
from identity_service.config import Settings


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python -m identity_service.scripts.hash_password <password>")
        return 2

    hasher = PasswordHasher(Settings.from_env().hash_work_factor)
    try:
        print(hasher.hash(args[0]))
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
