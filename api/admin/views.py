# api/admin/views.py
"""
User administration and statistics endpoints.
"""
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_session
from core.deps import AdminOrAbove, ClientContext, SuperAdminOnly
from api.auth.db_manager import get_user_by_id
from api.auth.models import MessageResponse, UserResponse
from .models import (
    AdminUserCreate,
    AdminUserUpdate,
    ReportSummaryResponse,
    StatisticsResponse,
    StatusToggle,
    TemporaryPasswordResponse,
    UserDetailResponse,
    UserFilters,
    UserListResponse,
)
from . import db_manager

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=UserListResponse, summary="List users (SuperAdmin)")
async def list_users(
    admin: SuperAdminOnly,
    filters: Annotated[UserFilters, Depends()],
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> UserListResponse:
    users, pagination = await db_manager.list_users(db, filters, page=page, limit=limit)
    return UserListResponse(
        data=[UserResponse.model_validate(u) for u in users],
        pagination=pagination,
    )


@router.post(
    "/users",
    response_model=TemporaryPasswordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user with a temporary password (SuperAdmin)",
)
async def create_user(
    payload: AdminUserCreate,
    admin: SuperAdminOnly,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> TemporaryPasswordResponse:
    outcome = await db_manager.create_user(
        db,
        admin,
        username=payload.username,
        email=payload.email,
        role=payload.role,
        phone_number=payload.phone_number,
        department=payload.department,
        is_active=payload.is_active,
        context=context,
    )
    return TemporaryPasswordResponse(
        message="User created successfully. Temporary password generated.",
        data=UserResponse.model_validate(outcome.value.user),
        temp_password=outcome.value.temp_password,
    )


@router.get("/users/{user_id}", response_model=UserDetailResponse, summary="Get a user (SuperAdmin)")
async def get_user(
    user_id: int,
    admin: SuperAdminOnly,
    db: AsyncSession = Depends(get_session),
) -> UserDetailResponse:
    user = await get_user_by_id(db, user_id)
    return UserDetailResponse(data=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=UserDetailResponse, summary="Update a user (SuperAdmin)")
async def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    admin: SuperAdminOnly,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> UserDetailResponse:
    outcome = await db_manager.update_user(
        db, admin, user_id, payload.model_dump(exclude_unset=True), context=context
    )
    return UserDetailResponse(
        message="User updated successfully",
        data=UserResponse.model_validate(outcome.value),
    )


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete a user (SuperAdmin)")
async def delete_user(
    user_id: int,
    admin: SuperAdminOnly,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await db_manager.delete_user(db, admin, user_id, context=context)
    return MessageResponse(message="User deleted successfully")


@router.put(
    "/users/{user_id}/toggle-status",
    response_model=UserDetailResponse,
    summary="Activate or deactivate a user (SuperAdmin)",
)
async def toggle_user_status(
    user_id: int,
    admin: SuperAdminOnly,
    context: ClientContext,
    payload: StatusToggle | None = None,
    db: AsyncSession = Depends(get_session),
) -> UserDetailResponse:
    outcome = await db_manager.set_user_status(
        db, admin, user_id, is_active=payload.is_active if payload else None, context=context
    )
    user = outcome.value
    return UserDetailResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        data=UserResponse.model_validate(user),
    )


@router.post(
    "/users/{user_id}/reset-password",
    response_model=TemporaryPasswordResponse,
    summary="Reset a user's password to a temporary one (SuperAdmin)",
)
async def reset_user_password(
    user_id: int,
    admin: SuperAdminOnly,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> TemporaryPasswordResponse:
    outcome = await db_manager.reset_user_password(db, admin, user_id, context=context)
    return TemporaryPasswordResponse(
        message="Password reset successfully. New temporary password generated.",
        data=UserResponse.model_validate(outcome.value.user),
        temp_password=outcome.value.temp_password,
    )


@router.get("/statistics", response_model=StatisticsResponse, summary="Usage statistics (SuperAdmin)")
async def get_statistics(
    admin: SuperAdminOnly,
    db: AsyncSession = Depends(get_session),
) -> StatisticsResponse:
    users, activity, pending = await db_manager.get_statistics(db)
    return StatisticsResponse(users=users, activity=activity, pending_permission_requests=pending)


@router.get(
    "/reports/summary",
    response_model=ReportSummaryResponse,
    summary="Report summary (Admin or SuperAdmin)",
)
async def get_report_summary(
    caller: AdminOrAbove,
    db: AsyncSession = Depends(get_session),
) -> ReportSummaryResponse:
    by_role, active, pending = await db_manager.report_summary(db)
    return ReportSummaryResponse(
        generated_at=datetime.now(timezone.utc),
        generated_by=caller.user_id,
        active_users=active,
        users_by_role=by_role,
        pending_permission_requests=pending,
    )
