#!/usr/bin/env python
"""Deployment-time schema creation and first administrator.

Creates every table using MIGRATION_DATABASE_URL (a role allowed to run DDL)
and, when ADMIN_PASSWORD is set, seeds the first administrator. The API
itself connects with DATABASE_URL and never creates or alters tables.

Usage:
    python backend/scripts/init_db.py

Environment Variables:
    MIGRATION_DATABASE_URL: Connection string with DDL rights
    PASSWORD_PEPPER: Password hashing pepper (required when seeding)
    ADMIN_USERNAME: Username for admin user (default: admin)
    ADMIN_EMAIL: Email for admin user (default: admin@secureshop.com)
    ADMIN_PASSWORD: Password for admin user (admin is skipped when unset)
"""

import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from sqlalchemy import or_
from sqlalchemy.orm import sessionmaker

from auth.password import hash_password
from auth.password_policy import validate_password
from auth.roles import UserRole
from config import settings
from database import build_engine, create_schema
from models.user import User


def seed_admin(session_factory) -> None:
    """Create the first administrator if it does not exist yet."""
    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        print("ADMIN_PASSWORD not set, skipping administrator seed")
        return

    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@secureshop.com").lower()

    errors = validate_password(admin_password)
    if errors:
        print("ERROR: Password does not meet strength requirements:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    session = session_factory()
    try:
        existing_user = session.query(User).filter(
            or_(User.username == admin_username, User.email == admin_email)
        ).first()

        if existing_user:
            print(f"Administrator {admin_username} already exists, nothing to do")
            return

        admin_user = User(
            username=admin_username,
            email=admin_email,
            password_hash=hash_password(admin_password),
            role=UserRole.ADMIN.value,
            enabled=True,
        )
        session.add(admin_user)
        session.commit()

        print("SUCCESS: Admin user created")
        print(f"  ID:       {admin_user.id}")
        print(f"  Username: {admin_user.username}")
        print(f"  Email:    {admin_user.email}")

    except Exception as e:
        session.rollback()
        print(f"ERROR: Failed to create admin user: {e}")
        sys.exit(1)

    finally:
        session.close()


def main():
    """Create schema, then seed the administrator."""
    engine = build_engine(settings.MIGRATION_DATABASE_URL)

    create_schema(engine)
    print("SUCCESS: Schema created")

    seed_admin(sessionmaker(bind=engine))


if __name__ == "__main__":
    main()
