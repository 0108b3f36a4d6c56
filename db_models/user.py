# db_models/user.py
"""
User model with role-based access control for the Council Management System.

Roles:
- SUPER_ADMIN: Full system access, manages accounts, reviews permission requests
- ADMIN: Manages programs, beneficiaries, groups and loans
- DATA_ENTRY: Registers beneficiaries and groups
- AUDITOR: Read-only access to reports and the audit trail
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from db_base import Base


class UserRole(str, Enum):
    """User roles for authorization."""
    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    DATA_ENTRY = "DataEntry"
    AUDITOR = "Auditor"


class Permission(str, Enum):
    """Capabilities that can be granted by role or requested individually."""
    MANAGE_PROGRAMS = "manage_programs"
    MANAGE_BENEFICIARIES = "manage_beneficiaries"
    MANAGE_GROUPS = "manage_groups"
    MANAGE_LOANS = "manage_loans"
    MANAGE_USERS = "manage_users"
    VIEW_REPORTS = "view_reports"
    EXPORT_DATA = "export_data"
    VIEW_AUDIT_LOGS = "view_audit_logs"


ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.SUPER_ADMIN: frozenset(Permission),
    UserRole.ADMIN: frozenset({
        Permission.MANAGE_PROGRAMS,
        Permission.MANAGE_BENEFICIARIES,
        Permission.MANAGE_GROUPS,
        Permission.MANAGE_LOANS,
        Permission.VIEW_REPORTS,
        Permission.EXPORT_DATA,
    }),
    UserRole.DATA_ENTRY: frozenset({
        Permission.MANAGE_BENEFICIARIES,
        Permission.MANAGE_GROUPS,
    }),
    UserRole.AUDITOR: frozenset({
        Permission.VIEW_REPORTS,
        Permission.EXPORT_DATA,
        Permission.VIEW_AUDIT_LOGS,
    }),
}


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Login credentials
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Role-based access control
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.DATA_ENTRY.value,
    )

    # Profile
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Account status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Single-use tokens are stored as SHA-256 digests, never in plaintext
    email_verification_token: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )
    email_verification_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    password_reset_token: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )
    password_reset_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    def permissions(self) -> frozenset[Permission]:
        return ROLE_PERMISSIONS.get(UserRole(self.role), frozenset())
