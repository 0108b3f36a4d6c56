# api/permission_requests/db_manager.py
"""
Permission request workflow: Pending -> Approved | Denied, reviewed once by a SuperAdmin.

Approval only records the decision. Granting the capability (role change or
grant table) belongs to the business module that owns it.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from core.deps import Identity, RequestContext
from core.errors import AlreadyReviewedError, ForbiddenError, NotFoundError
from core.outcomes import SideEffects, TransitionOutcome
from core.pagination import Pagination, offset_for
from db_models.permission_request import PermissionRequest, RequestStatus
from db_models.user import Permission, UserRole
from api.audit_logs.db_manager import record_action
from api.auth import queries as user_queries
from .models import ReviewDecision
from . import queries

REVIEWER_ROLES = (UserRole.SUPER_ADMIN,)

_DECISION_STATUS = {
    ReviewDecision.APPROVE: RequestStatus.APPROVED,
    ReviewDecision.DENY: RequestStatus.DENIED,
}


async def get_request_by_id(db: AsyncSession, request_id: int) -> PermissionRequest:
    """Get a request by ID. Raises NotFoundError if not found."""
    result = await db.execute(queries.select_request_by_id(request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError(f"Permission request {request_id} not found")
    return request


async def create_request(
    db: AsyncSession,
    requester_id: int,
    permission: Permission,
    reason: str,
    target_user_id: int | None = None,
    context: RequestContext | None = None,
) -> TransitionOutcome[PermissionRequest]:
    """
    File a Pending request, for the requester or on behalf of another user.

    Raises:
        NotFoundError: If the target user does not exist
    """
    target_id = target_user_id if target_user_id is not None else requester_id
    result = await db.execute(user_queries.select_user_by_id(target_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Target user not found")

    request = PermissionRequest(
        requester_id=requester_id,
        target_user_id=target_id,
        requested_permission=Permission(permission).value,
        reason=reason,
        status=RequestStatus.PENDING.value,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Permission Requested",
        f"Permission request: {request.requested_permission}",
        context=context,
        user_id=requester_id,
        table_name="permission_requests",
        record_id=request.id,
        new_values={"status": request.status, "target_user_id": target_id},
    )
    return TransitionOutcome(request, side_effects)


async def review_request(
    db: AsyncSession,
    request_id: int,
    reviewer: Identity,
    decision: ReviewDecision,
    comments: str | None = None,
    context: RequestContext | None = None,
) -> TransitionOutcome[PermissionRequest]:
    """
    Approve or deny a Pending request.

    Raises:
        ForbiddenError: If the reviewer is not a SuperAdmin
        NotFoundError: If the request doesn't exist
        AlreadyReviewedError: If the request is no longer Pending
    """
    if reviewer.role not in REVIEWER_ROLES:
        raise ForbiddenError(
            extra={
                "required_roles": [r.value for r in REVIEWER_ROLES],
                "user_role": reviewer.role.value,
            },
        )

    request = await get_request_by_id(db, request_id)
    if not request.is_pending():
        raise AlreadyReviewedError(
            f"Permission request {request_id} has already been reviewed ({request.status})"
        )

    new_status = _DECISION_STATUS[ReviewDecision(decision)]
    result = await db.execute(
        queries.review_pending_request(request_id, new_status, reviewer.user_id, comments)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise AlreadyReviewedError(f"Permission request {request_id} has already been reviewed")
    await db.commit()
    await db.refresh(request)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Permission Request Reviewed",
        f"Permission request {request_id} {new_status.value.lower()}: {request.requested_permission}",
        context=context,
        user_id=reviewer.user_id,
        table_name="permission_requests",
        record_id=request_id,
        old_values={"status": RequestStatus.PENDING.value},
        new_values={"status": new_status.value, "review_comments": comments},
    )
    return TransitionOutcome(request, side_effects)


async def list_requests(
    db: AsyncSession,
    status: RequestStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PermissionRequest], Pagination]:
    result = await db.execute(queries.count_requests(status))
    total = result.scalar() or 0

    result = await db.execute(
        queries.select_requests(status, offset=offset_for(page, limit), limit=limit)
    )
    return list(result.scalars().all()), Pagination.build(total, page, limit)


async def list_own_requests(db: AsyncSession, requester_id: int) -> list[PermissionRequest]:
    result = await db.execute(queries.select_requests_by_requester(requester_id))
    return list(result.scalars().all())
