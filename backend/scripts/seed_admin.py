#!/usr/bin/env python
"""Seed script to create the initial admin account.

Run once during setup. Further volunteers and admins are promoted through
PUT /api/v1/users/{id}/type by this admin. The script prints a bearer token
for the new account so the API can be used before a login service exists.

Usage:
    python backend/scripts/seed_admin.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    PASSWORD_PEPPER: Password hashing pepper (required)
    JWT_SECRET: Token signing key
    ADMIN_USERNAME: Username for the admin (default: admin)
    ADMIN_EMAIL: Email for the admin (default: admin@example.com)
    ADMIN_PASSWORD: Password for the admin (required, PASSWORD_MIN_LENGTH applies)
"""

import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from database import get_db_session
from domain.moderation.enums import UserRole
from models.user import User
from auth.jwt import create_access_token
from auth.password import check_password_policy, hash_password


def main():
    """Create initial admin user."""
    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com").lower()
    admin_password = os.getenv("ADMIN_PASSWORD", "")
    try:
        check_password_policy(admin_password)
    except ValueError as e:
        print(f"ERROR: ADMIN_PASSWORD rejected: {e}")
        sys.exit(1)

    try:
        with get_db_session() as session:
            existing_user = session.query(User).filter(
                or_(User.username == admin_username, User.email == admin_email)
            ).first()
            if existing_user:
                print(f"ERROR: User {admin_username} / {admin_email} already exists")
                sys.exit(1)

            admin_user = User(
                username=admin_username,
                email=admin_email,
                password_hash=hash_password(admin_password),
                role=UserRole.ADMIN.value,
            )
            session.add(admin_user)
            session.flush()
            admin_id = admin_user.id
    except (SQLAlchemyError, ValueError) as e:
        print(f"ERROR: Failed to create admin user: {e}")
        sys.exit(1)

    print("SUCCESS: Admin user created")
    print(f"  ID:       {admin_id}")
    print(f"  Username: {admin_username}")
    print(f"  Email:    {admin_email}")
    print(f"  Role:     {UserRole.ADMIN.value}")
    print(f"  Token:    {create_access_token(admin_id, UserRole.ADMIN.value, admin_username)}")


if __name__ == "__main__":
    main()
