"""
Bootstrap the first SuperAdmin account.

Self-registration cannot create a SuperAdmin-managed system on its own: someone
has to review permission requests and administer users. This script creates
that first account (verified and active), and optionally one demo user per
remaining role.

Usage:
    python seed_database.py --username root --email root@example.com
    SUPERADMIN_PASSWORD=... python seed_database.py --demo-users
"""
import argparse
import getpass
import logging
import os
import sys

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from config import settings
from core.security import get_password_hash
from db_models.audit_log import AuditLog
from db_models.user import User, UserRole

logger = logging.getLogger("seed_database")

DEFAULT_SUPERADMIN_USERNAME = "superadmin"
DEFAULT_SUPERADMIN_EMAIL = "superadmin@example.com"

DEMO_USERS = [
    {"username": "admin", "email": "admin@example.com", "role": UserRole.ADMIN, "department": "Programs"},
    {"username": "dataentry", "email": "dataentry@example.com", "role": UserRole.DATA_ENTRY, "department": "Records"},
    {"username": "auditor", "email": "auditor@example.com", "role": UserRole.AUDITOR, "department": "Finance"},
]
DEMO_PASSWORD = "ChangeMe123!"


def get_sync_url(async_url: str) -> str:
    """Convert the async application URL to a synchronous driver URL."""
    return (
        async_url.replace("postgresql+asyncpg://", "postgresql+psycopg2://")
        .replace("sqlite+aiosqlite://", "sqlite://")
    )


def _create_user(session: Session, *, username: str, email: str, password: str, role: UserRole,
                 department: str | None = None) -> User | None:
    # same rules as the API's EmailStr, so seeded accounts can use the public email flows
    email = validate_email(email, check_deliverability=False).normalized
    existing = session.execute(
        select(User).where((User.username == username) | (User.email == email))
    ).scalar_one_or_none()
    if existing is not None:
        logger.info("User %s already exists (id=%s), skipping", username, existing.id)
        return None

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        role=role.value,
        department=department,
        is_active=True,
        email_verified=True,
    )
    session.add(user)
    session.flush()
    session.add(
        AuditLog(
            action="User Created",
            details=f"Seeded user: {username} ({role.value})",
            table_name="users",
            record_id=user.id,
        )
    )
    logger.info("Created %s %s (%s) -> id=%s", role.value, username, email, user.id)
    return user


def seed_database(username: str, email: str, password: str, demo_users: bool = False) -> bool:
    engine = create_engine(get_sync_url(settings.DATABASE_URL))
    try:
        with Session(engine) as session:
            super_admin = session.execute(
                select(User).where(User.role == UserRole.SUPER_ADMIN.value)
            ).scalars().first()
            if super_admin is not None:
                logger.info("A SuperAdmin already exists: %s", super_admin.username)
            else:
                _create_user(session, username=username, email=email, password=password,
                             role=UserRole.SUPER_ADMIN, department="Administration")

            if demo_users:
                for demo in DEMO_USERS:
                    _create_user(session, password=DEMO_PASSWORD, **demo)

            session.commit()
    finally:
        engine.dispose()
    return True


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    parser = argparse.ArgumentParser(description="Create the first SuperAdmin account")
    parser.add_argument("--username", default=os.environ.get("SUPERADMIN_USERNAME", DEFAULT_SUPERADMIN_USERNAME))
    parser.add_argument("--email", default=os.environ.get("SUPERADMIN_EMAIL", DEFAULT_SUPERADMIN_EMAIL))
    parser.add_argument(
        "--demo-users",
        action="store_true",
        help=f"Also create one Admin, DataEntry and Auditor account (password {DEMO_PASSWORD})",
    )
    args = parser.parse_args()

    password = os.environ.get("SUPERADMIN_PASSWORD") or getpass.getpass("SuperAdmin password: ")
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        logger.error("Password must be at least %s characters long", settings.PASSWORD_MIN_LENGTH)
        sys.exit(1)

    try:
        validate_email(args.email, check_deliverability=False)
    except EmailNotValidError as exc:
        logger.error("Invalid SuperAdmin email %s: %s", args.email, exc)
        sys.exit(1)

    seed_database(args.username, args.email, password, demo_users=args.demo_users)


if __name__ == "__main__":
    main()
