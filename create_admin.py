"""
Create an admin (or owner) account from the command line.

Usage:
    python create_admin.py admin@example.com 'a-strong-password' --name "Anna" --role owner
"""

import argparse
import logging
import sys

from fastapi import HTTPException

from eod_backend.fastapi.dependencies.database import SessionLocal, init_db
from eod_backend.fastapi.crud.user import create_user
from eod_backend.fastapi.schemas.user import UserCreate

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("create_admin")


def create_admin_account(email: str, password: str, display_name: str = None, role: str = "admin"):
    """Create an approved admin/owner account and return it, or None on conflict."""
    init_db()
    db = SessionLocal()
    try:
        admin = create_user(db, UserCreate(
            email=email,
            password=password,
            display_name=display_name,
            role=role,
            approved=True,
            is_active=True,
        ))
        logger.info("Created %s account %s (id %s)", admin.role, admin.email, admin.id)
        logger.info("Login: POST /api/v1/auth/login")
        return admin
    except HTTPException as e:
        logger.error("Could not create admin: %s", e.detail)
        return None
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", dest="display_name", default=None)
    parser.add_argument("--role", choices=["admin", "owner"], default="admin")
    args = parser.parse_args(argv)

    admin = create_admin_account(args.email, args.password, args.display_name, args.role)
    return 0 if admin else 1


if __name__ == "__main__":
    sys.exit(main())
