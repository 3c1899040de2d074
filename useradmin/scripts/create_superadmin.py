"""
Create the first SuperAdmin (one-time bootstrap). Run from project root:
  python -m useradmin.scripts.create_superadmin USERNAME EMAIL PASSWORD
Fails once any SuperAdmin exists or the bootstrap has already been used.
"""
import argparse
import logging
import sys

from useradmin.core.database import SessionLocal
from useradmin.services.errors import BootstrapUnavailable, StoreFailure, ValidationFailure
from useradmin.services.roles import bootstrap_superadmin


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the first SuperAdmin user.")
    parser.add_argument("username", help="Username (letters, digits and -._@+)")
    parser.add_argument("email", help="Email address used to log in")
    parser.add_argument("password", help="Password (must satisfy the password policy)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    db = SessionLocal()
    try:
        user = bootstrap_superadmin(db, args.username, args.email, args.password)
        print(f"Created SuperAdmin '{user.username}' (id {user.id}).")
    except BootstrapUnavailable:
        print("Bootstrap is no longer available: a SuperAdmin already exists.", file=sys.stderr)
        return 1
    except (ValidationFailure, StoreFailure) as e:
        for error in e.errors:
            print(error, file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
