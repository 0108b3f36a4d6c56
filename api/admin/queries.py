# api/admin/queries.py
"""
SQLAlchemy query builders for user administration and statistics.
"""
from datetime import datetime

from sqlalchemy import Select, select, delete, func, case, or_

from db_models.audit_log import AuditLog
from db_models.permission_request import PermissionRequest, RequestStatus
from db_models.user import User, UserRole
from api.audit_logs.queries import LIKE_ESCAPE, contains_pattern
from .models import StatusFilter, UserFilters

ALL = "All"


def _apply_user_filters(stmt: Select, filters: UserFilters) -> Select:
    if filters.search:
        pattern = contains_pattern(filters.search)
        stmt = stmt.where(
            or_(
                User.username.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
                User.department.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if filters.role and filters.role != ALL:
        stmt = stmt.where(User.role == filters.role)

    if filters.status == StatusFilter.ACTIVE:
        stmt = stmt.where(User.is_active == True)
    elif filters.status == StatusFilter.INACTIVE:
        stmt = stmt.where(User.is_active == False)

    return stmt


def select_users(filters: UserFilters, offset: int = 0, limit: int = 50):
    """Newest accounts first."""
    return (
        _apply_user_filters(select(User), filters)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(limit)
    )


def count_users(filters: UserFilters):
    return _apply_user_filters(select(func.count(User.id)), filters)


def count_active_super_admins():
    return select(func.count(User.id)).where(
        User.role == UserRole.SUPER_ADMIN.value,
        User.is_active == True,
    )


def delete_user(user_id: int):
    return delete(User).where(User.id == user_id).execution_options(synchronize_session=False)


def user_statistics():
    return select(
        func.count(User.id).label("total_users"),
        func.sum(case((User.is_active == True, 1), else_=0)).label("active_users"),
        func.sum(case((User.is_active == False, 1), else_=0)).label("inactive_users"),
        func.sum(case((User.email_verified == False, 1), else_=0)).label("unverified_users"),
        func.sum(case((User.role == UserRole.SUPER_ADMIN.value, 1), else_=0)).label("super_admins"),
        func.sum(case((User.role == UserRole.ADMIN.value, 1), else_=0)).label("admins"),
        func.sum(case((User.role == UserRole.DATA_ENTRY.value, 1), else_=0)).label("data_entry"),
        func.sum(case((User.role == UserRole.AUDITOR.value, 1), else_=0)).label("auditors"),
    )


def activity_statistics(today: datetime, week: datetime, month: datetime):
    return select(
        func.count(AuditLog.id).label("total_activities"),
        func.sum(case((AuditLog.created_at >= today, 1), else_=0)).label("today_activities"),
        func.sum(case((AuditLog.created_at >= week, 1), else_=0)).label("week_activities"),
        func.sum(case((AuditLog.created_at >= month, 1), else_=0)).label("month_activities"),
    )


def count_pending_requests():
    return select(func.count(PermissionRequest.id)).where(
        PermissionRequest.status == RequestStatus.PENDING.value
    )


def count_active_users_by_role():
    return (
        select(User.role, func.count(User.id))
        .where(User.is_active == True)
        .group_by(User.role)
    )
