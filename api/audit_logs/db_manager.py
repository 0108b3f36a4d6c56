# api/audit_logs/db_manager.py
"""
Audit recorder: append-only writes plus the filtered read and export paths.
"""
import csv
import io
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.deps import RequestContext
from core.pagination import Pagination, offset_for
from db_models.audit_log import AuditLog
from .models import AuditLogFilters, AuditLogResponse
from . import queries

logger = logging.getLogger(__name__)

EXPORT_ROW_LIMIT = 10000
CSV_HEADERS = ["ID", "Action", "User", "Details", "Table", "Record ID", "IP Address", "Created At"]


async def record_action(
    db: AsyncSession,
    action: str,
    details: str | None = None,
    *,
    context: RequestContext | None = None,
    user_id: int | None = None,
    table_name: str | None = None,
    record_id: int | None = None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
) -> bool:
    """
    Append one audit entry and commit it.

    Call only after the primary change is committed. A failure here is logged
    and reported as False; it is never raised to the caller.
    """
    try:
        db.add(
            AuditLog(
                action=action,
                details=details,
                user_id=user_id,
                ip_address=context.ip_address if context else None,
                user_agent=context.user_agent if context else None,
                table_name=table_name,
                record_id=record_id,
                old_values=old_values,
                new_values=new_values,
            )
        )
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record audit entry action=%r user_id=%s", action, user_id)
        await db.rollback()
        return False
    return True


async def list_logs(
    db: AsyncSession,
    filters: AuditLogFilters,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[AuditLog], Pagination]:
    """Return one page of matching entries and the pagination summary."""
    result = await db.execute(queries.count_logs(filters))
    total = result.scalar() or 0

    offset = offset_for(page, limit)
    result = await db.execute(queries.select_logs(filters, offset=offset, limit=limit))
    entries = list(result.scalars().all())

    return entries, Pagination.build(total, page, limit)


async def list_actions(db: AsyncSession) -> list[str]:
    result = await db.execute(queries.select_distinct_actions())
    return list(result.scalars().all())


async def fetch_for_export(db: AsyncSession, filters: AuditLogFilters) -> list[AuditLog]:
    result = await db.execute(queries.select_logs(filters, limit=EXPORT_ROW_LIMIT))
    return list(result.scalars().all())


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def render_csv(entries: list[AuditLog]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow([
            entry.id,
            entry.action,
            entry.username or "System",
            entry.details or "",
            entry.table_name or "",
            entry.record_id if entry.record_id is not None else "",
            entry.ip_address or "",
            _iso(entry.created_at),
        ])
    return buffer.getvalue()


def render_json(entries: list[AuditLog]) -> dict[str, Any]:
    return {
        "success": True,
        "data": [AuditLogResponse.model_validate(e).model_dump(mode="json") for e in entries],
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "total_records": len(entries),
    }
