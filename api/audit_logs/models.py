# api/audit_logs/models.py
"""
Pydantic models for the audit log endpoints.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.pagination import Pagination


class DateWindow(str, Enum):
    ALL = "All"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


class AuditLogFilters(BaseModel):
    """Conjunctive filters shared by the list and export endpoints."""
    search: str | None = Field(None, description="Matches action, details or username")
    action: str | None = Field(None, description="Exact action label; 'All' disables the filter")
    user: str | None = Field(None, description="Actor username; 'All' disables the filter")
    date: DateWindow = Field(DateWindow.ALL, description="Relative window: today, week or month")
    date_from: datetime | None = None
    date_to: datetime | None = None


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    details: str | None = None
    user_id: int | None = None
    username: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    table_name: str | None = None
    record_id: int | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    success: bool = True
    data: list[AuditLogResponse]
    pagination: Pagination


class AuditActionsResponse(BaseModel):
    success: bool = True
    data: list[str]
