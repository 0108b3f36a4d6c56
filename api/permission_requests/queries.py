# api/permission_requests/queries.py
"""
SQLAlchemy query builders for permission requests.
"""
from sqlalchemy import select, update, func

from db_models.permission_request import PermissionRequest, RequestStatus


def select_request_by_id(request_id: int):
    return select(PermissionRequest).where(PermissionRequest.id == request_id)


def select_requests(status: RequestStatus | None = None, offset: int = 0, limit: int = 20):
    """Newest first, optionally restricted to one status."""
    stmt = select(PermissionRequest)
    if status is not None:
        stmt = stmt.where(PermissionRequest.status == status.value)
    return (
        stmt.order_by(PermissionRequest.created_at.desc(), PermissionRequest.id.desc())
        .offset(offset)
        .limit(limit)
    )


def count_requests(status: RequestStatus | None = None):
    stmt = select(func.count(PermissionRequest.id))
    if status is not None:
        stmt = stmt.where(PermissionRequest.status == status.value)
    return stmt


def select_requests_by_requester(requester_id: int):
    return (
        select(PermissionRequest)
        .where(PermissionRequest.requester_id == requester_id)
        .order_by(PermissionRequest.created_at.desc(), PermissionRequest.id.desc())
    )


def review_pending_request(request_id: int, status: RequestStatus, reviewer_id: int, comments: str | None):
    """Only matches while the request is still Pending, so a review happens at most once."""
    return (
        update(PermissionRequest)
        .where(
            PermissionRequest.id == request_id,
            PermissionRequest.status == RequestStatus.PENDING.value,
        )
        .values(
            status=status.value,
            reviewed_by=reviewer_id,
            review_comments=comments,
            reviewed_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
