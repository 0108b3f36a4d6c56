# api/admin/models.py
"""
Pydantic models for user administration and statistics.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field

from core.pagination import Pagination
from db_models.user import UserRole
from api.auth.models import UserResponse


class StatusFilter(str, Enum):
    ALL = "All"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class UserFilters(BaseModel):
    search: str | None = Field(None, description="Matches username, email or department")
    role: str | None = Field(None, description="Role name; 'All' disables the filter")
    status: StatusFilter = StatusFilter.ALL


class AdminUserCreate(BaseModel):
    """Accounts created by a SuperAdmin are verified and get a temporary password."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    role: UserRole
    phone_number: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    is_active: bool = True


class AdminUserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr | None = None
    role: UserRole | None = None
    phone_number: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    is_active: bool | None = None


class StatusToggle(BaseModel):
    """Target state; omit to flip the current one."""
    is_active: bool | None = None


class UserListResponse(BaseModel):
    success: bool = True
    data: list[UserResponse]
    pagination: Pagination


class UserDetailResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: UserResponse


class TemporaryPasswordResponse(BaseModel):
    """The temporary password is shown once; only its hash is stored."""
    success: bool = True
    message: str
    data: UserResponse
    temp_password: str


class UserStatistics(BaseModel):
    total_users: int = 0
    active_users: int = 0
    inactive_users: int = 0
    unverified_users: int = 0
    super_admins: int = 0
    admins: int = 0
    data_entry: int = 0
    auditors: int = 0


class ActivityStatistics(BaseModel):
    total_activities: int = 0
    today_activities: int = 0
    week_activities: int = 0
    month_activities: int = 0


class StatisticsResponse(BaseModel):
    success: bool = True
    users: UserStatistics
    activity: ActivityStatistics
    pending_permission_requests: int = 0


class ReportSummaryResponse(BaseModel):
    """Headline figures for the reporting screens of elevated roles."""
    success: bool = True
    generated_at: datetime
    generated_by: int
    active_users: int
    users_by_role: dict[str, int]
    pending_permission_requests: int
