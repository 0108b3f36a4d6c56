# api/audit_logs/queries.py
"""
SQLAlchemy query builders for the audit trail.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import Select, select, func, or_

from db_models.audit_log import AuditLog
from db_models.user import User
from .models import AuditLogFilters, DateWindow

ALL = "All"

_WINDOW_DAYS = {
    DateWindow.WEEK: 7,
    DateWindow.MONTH: 30,
}


def window_start(window: DateWindow, now: datetime | None = None) -> datetime | None:
    """Lower bound for a relative date window, measured from the start of today (UTC)."""
    if window == DateWindow.ALL:
        return None
    now = now or datetime.now(timezone.utc)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_today - timedelta(days=_WINDOW_DAYS.get(window, 0))


LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """ILIKE pattern matching `text` literally anywhere in the column."""
    for char in (LIKE_ESCAPE, "%", "_"):
        text = text.replace(char, LIKE_ESCAPE + char)
    return f"%{text}%"


def _apply_filters(stmt: Select, filters: AuditLogFilters) -> Select:
    stmt = stmt.outerjoin(User, AuditLog.user_id == User.id)

    if filters.search:
        pattern = contains_pattern(filters.search)
        stmt = stmt.where(
            or_(
                AuditLog.action.ilike(pattern, escape=LIKE_ESCAPE),
                AuditLog.details.ilike(pattern, escape=LIKE_ESCAPE),
                User.username.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if filters.action and filters.action != ALL:
        stmt = stmt.where(AuditLog.action == filters.action)

    if filters.user and filters.user != ALL:
        stmt = stmt.where(User.username == filters.user)

    start = window_start(filters.date)
    if start is not None:
        stmt = stmt.where(AuditLog.created_at >= start)

    if filters.date_from is not None:
        stmt = stmt.where(AuditLog.created_at >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(AuditLog.created_at <= filters.date_to)

    return stmt


def select_logs(filters: AuditLogFilters, offset: int | None = None, limit: int | None = None):
    """Select filtered entries, newest first."""
    stmt = _apply_filters(select(AuditLog), filters).order_by(
        AuditLog.created_at.desc(), AuditLog.id.desc()
    )
    if offset is not None:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


def count_logs(filters: AuditLogFilters):
    return _apply_filters(select(func.count(AuditLog.id)).select_from(AuditLog), filters)


def select_distinct_actions():
    return select(AuditLog.action).distinct().order_by(AuditLog.action)


def count_logs_since(since: datetime):
    return select(func.count(AuditLog.id)).where(AuditLog.created_at >= since)
