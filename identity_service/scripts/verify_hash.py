#!/usr/bin/env python3
"""
Check whether a password matches a bcrypt digest.

Usage: python -m identity_service.scripts.verify_hash <password> <hash>
"""
import sys
from typing import List, Optional

from identity_service.auth.errors import PasswordHashError
from identity_service.auth.passwords import PasswordHasher


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("Usage: python -m identity_service.scripts.verify_hash <password> <hash>")
        return 2

    password, digest = args
    try:
        matched = PasswordHasher().verify(password, digest)
    except PasswordHashError as e:
        print(f"Error: {e}")
        return 1

    if not matched:
        print("Password does not match hash.")
        return 1
    print("Password matches hash.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
