# api/permission_requests/models.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from core.pagination import Pagination
from db_models.permission_request import RequestStatus
from db_models.user import Permission


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    DENY = "deny"


class PermissionRequestCreate(BaseModel):
    requested_permission: Permission
    reason: str = Field(..., min_length=1, max_length=1000)
    target_user_id: int | None = Field(None, description="Defaults to the requester")


class PermissionRequestReview(BaseModel):
    action: ReviewDecision
    comments: str | None = Field(None, max_length=1000)


class PermissionRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    requester_id: int
    requester_username: str | None = None
    target_user_id: int | None = None
    target_username: str | None = None
    requested_permission: Permission
    reason: str | None = None
    status: RequestStatus
    reviewed_by: int | None = None
    review_comments: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class PermissionRequestResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: PermissionRequestRead


class PermissionRequestListResponse(BaseModel):
    success: bool = True
    data: list[PermissionRequestRead]
    pagination: Pagination
