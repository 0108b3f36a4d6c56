# api/permission_requests/views.py
"""
Permission request endpoints. Filing is open to any authenticated user;
listing everything and reviewing are SuperAdmin only.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_session
from core.deps import ClientContext, CurrentIdentity, SuperAdminOnly
from db_models.permission_request import RequestStatus
from .models import (
    PermissionRequestCreate,
    PermissionRequestListResponse,
    PermissionRequestRead,
    PermissionRequestResponse,
    PermissionRequestReview,
)
from . import db_manager

router = APIRouter(prefix="/auth/permission-requests", tags=["permission-requests"])


@router.post(
    "",
    response_model=PermissionRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an additional permission",
)
async def create_permission_request(
    payload: PermissionRequestCreate,
    identity: CurrentIdentity,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> PermissionRequestResponse:
    outcome = await db_manager.create_request(
        db,
        requester_id=identity.user_id,
        permission=payload.requested_permission,
        reason=payload.reason,
        target_user_id=payload.target_user_id,
        context=context,
    )
    return PermissionRequestResponse(
        message="Permission request submitted successfully",
        data=PermissionRequestRead.model_validate(outcome.value),
    )


@router.get(
    "/mine",
    response_model=list[PermissionRequestRead],
    summary="Requests filed by the caller",
)
async def list_my_permission_requests(
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_session),
) -> list[PermissionRequestRead]:
    requests = await db_manager.list_own_requests(db, identity.user_id)
    return [PermissionRequestRead.model_validate(r) for r in requests]


@router.get(
    "",
    response_model=PermissionRequestListResponse,
    summary="List permission requests (SuperAdmin)",
)
async def list_permission_requests(
    admin: SuperAdminOnly,
    status_filter: RequestStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> PermissionRequestListResponse:
    requests, pagination = await db_manager.list_requests(db, status_filter, page=page, limit=limit)
    return PermissionRequestListResponse(
        data=[PermissionRequestRead.model_validate(r) for r in requests],
        pagination=pagination,
    )


@router.get(
    "/{request_id}",
    response_model=PermissionRequestResponse,
    summary="Get a permission request (SuperAdmin)",
)
async def get_permission_request(
    request_id: int,
    admin: SuperAdminOnly,
    db: AsyncSession = Depends(get_session),
) -> PermissionRequestResponse:
    request = await db_manager.get_request_by_id(db, request_id)
    return PermissionRequestResponse(data=PermissionRequestRead.model_validate(request))


@router.put(
    "/{request_id}",
    response_model=PermissionRequestResponse,
    summary="Approve or deny a permission request (SuperAdmin)",
)
async def review_permission_request(
    request_id: int,
    payload: PermissionRequestReview,
    admin: SuperAdminOnly,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> PermissionRequestResponse:
    outcome = await db_manager.review_request(
        db,
        request_id,
        reviewer=admin,
        decision=payload.action,
        comments=payload.comments,
        context=context,
    )
    return PermissionRequestResponse(
        message=f"Permission request {outcome.value.status.lower()} successfully",
        data=PermissionRequestRead.model_validate(outcome.value),
    )
