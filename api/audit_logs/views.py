# api/audit_logs/views.py
"""
Audit trail endpoints (SuperAdmin and Auditor).
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_session
from core.deps import AuditReaders
from .models import (
    AuditActionsResponse,
    AuditLogFilters,
    AuditLogListResponse,
    AuditLogResponse,
    ExportFormat,
)
from . import db_manager

router = APIRouter(prefix="/admin/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogListResponse, summary="List audit entries")
async def list_audit_logs(
    reader: AuditReaders,
    filters: Annotated[AuditLogFilters, Depends()],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> AuditLogListResponse:
    """Filtered, paginated audit trail, newest first."""
    entries, pagination = await db_manager.list_logs(db, filters, page=page, limit=limit)
    return AuditLogListResponse(
        data=[AuditLogResponse.model_validate(e) for e in entries],
        pagination=pagination,
    )


@router.get("/actions", response_model=AuditActionsResponse, summary="Distinct action labels")
async def list_audit_actions(
    reader: AuditReaders,
    db: AsyncSession = Depends(get_session),
) -> AuditActionsResponse:
    return AuditActionsResponse(data=await db_manager.list_actions(db))


@router.get("/export", summary="Export audit entries as CSV or JSON")
async def export_audit_logs(
    reader: AuditReaders,
    filters: Annotated[AuditLogFilters, Depends()],
    format: ExportFormat = Query(ExportFormat.CSV),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Same filters as the list endpoint, unpaginated."""
    entries = await db_manager.fetch_for_export(db, filters)

    if format == ExportFormat.CSV:
        return Response(
            content=db_manager.render_csv(entries),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=audit-logs.csv"},
        )

    return JSONResponse(
        content=db_manager.render_json(entries),
        headers={"Content-Disposition": "attachment; filename=audit-logs.json"},
    )
