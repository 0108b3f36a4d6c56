# api/admin/db_manager.py
"""
User administration for SuperAdmins.

Guards:
- SuperAdmin accounts cannot be created, deleted or deactivated here, and the
  SuperAdmin role cannot be assigned.
- A SuperAdmin cannot delete or deactivate their own account.
- The last active SuperAdmin cannot be demoted.
"""
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.deps import Identity, RequestContext
from core.errors import ConflictError, ValidationError
from core.outcomes import SideEffects, TransitionOutcome
from core.pagination import Pagination, offset_for
from core.security import generate_random_password, hash_password_async
from db_models.user import User, UserRole
from api.audit_logs.db_manager import record_action
from api.audit_logs.models import DateWindow
from api.audit_logs.queries import window_start
from api.auth import queries as user_queries
from api.auth.db_manager import get_user_by_id
from .models import ActivityStatistics, UserFilters, UserStatistics
from . import queries


ASSIGNABLE_ROLES = (UserRole.ADMIN, UserRole.DATA_ENTRY, UserRole.AUDITOR)
UPDATABLE_FIELDS = ("username", "email", "role", "phone_number", "department", "is_active")
CLEARABLE_FIELDS = ("phone_number", "department")


@dataclass
class CreatedUser:
    user: User
    temp_password: str


def _check_assignable(role: UserRole) -> None:
    if UserRole(role) not in ASSIGNABLE_ROLES:
        raise ValidationError(
            "Invalid role. Must be one of: " + ", ".join(r.value for r in ASSIGNABLE_ROLES)
        )


async def _is_last_super_admin(db: AsyncSession, user: User) -> bool:
    if not (user.is_super_admin() and user.is_active):
        return False
    result = await db.execute(queries.count_active_super_admins())
    return (result.scalar() or 0) <= 1


async def list_users(
    db: AsyncSession,
    filters: UserFilters,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[User], Pagination]:
    result = await db.execute(queries.count_users(filters))
    total = result.scalar() or 0

    result = await db.execute(queries.select_users(filters, offset=offset_for(page, limit), limit=limit))
    return list(result.scalars().all()), Pagination.build(total, page, limit)


async def create_user(
    db: AsyncSession,
    admin: Identity,
    *,
    username: str,
    email: str,
    role: UserRole,
    phone_number: str | None = None,
    department: str | None = None,
    is_active: bool = True,
    context: RequestContext | None = None,
) -> TransitionOutcome[CreatedUser]:
    """
    Create a verified account with a generated temporary password.

    Raises:
        ValidationError: If the role is SuperAdmin
        ConflictError: If the username or email is already taken
    """
    _check_assignable(role)

    temp_password = generate_random_password()
    user = User(
        username=username,
        email=email,
        password_hash=await hash_password_async(temp_password),
        role=UserRole(role).value,
        phone_number=phone_number,
        department=department,
        is_active=is_active,
        email_verified=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError() from exc
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "User Created",
        f"Created user: {user.username} ({user.role})",
        context=context,
        user_id=admin.user_id,
        table_name="users",
        record_id=user.id,
    )
    return TransitionOutcome(CreatedUser(user=user, temp_password=temp_password), side_effects)


async def update_user(
    db: AsyncSession,
    admin: Identity,
    user_id: int,
    changes: dict,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """
    Partial update of an account. An explicit null clears phone_number or
    department; nulls for the other fields are ignored.

    Raises:
        NotFoundError: If the user doesn't exist
        ValidationError: On a forbidden role change or self/SuperAdmin deactivation
        ConflictError: If the new username or email is already taken
    """
    user = await get_user_by_id(db, user_id)
    changes = {
        k: v for k, v in changes.items()
        if k in UPDATABLE_FIELDS and (v is not None or k in CLEARABLE_FIELDS)
    }

    if "role" in changes:
        new_role = UserRole(changes["role"])
        if new_role.value == user.role:
            del changes["role"]
        else:
            _check_assignable(new_role)
            if await _is_last_super_admin(db, user):
                raise ValidationError("Cannot demote the last active SuperAdmin")
            changes["role"] = new_role.value

    if changes.get("is_active") is False:
        _check_deactivatable(admin, user)

    if not changes:
        return TransitionOutcome(user)

    old_values = {k: getattr(user, k) for k in changes}
    try:
        await db.execute(user_queries.update_user_fields(user.id, **changes))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Username or email already exists") from exc
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "User Updated",
        f"Updated user: {user.username}",
        context=context,
        user_id=admin.user_id,
        table_name="users",
        record_id=user.id,
        old_values=old_values,
        new_values=changes,
    )
    return TransitionOutcome(user, side_effects)


def _check_deactivatable(admin: Identity, user: User) -> None:
    if user.is_super_admin():
        raise ValidationError("Cannot deactivate SuperAdmin users")
    if user.id == admin.user_id:
        raise ValidationError("Cannot deactivate your own account")


async def delete_user(
    db: AsyncSession,
    admin: Identity,
    user_id: int,
    context: RequestContext | None = None,
) -> TransitionOutcome[None]:
    """
    Raises:
        NotFoundError: If the user doesn't exist
        ValidationError: If the target is a SuperAdmin or the caller
    """
    user = await get_user_by_id(db, user_id)
    if user.is_super_admin():
        raise ValidationError("Cannot delete SuperAdmin users")
    if user.id == admin.user_id:
        raise ValidationError("Cannot delete your own account")

    username = user.username
    await db.execute(queries.delete_user(user.id))
    await db.commit()
    db.expunge(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "User Deleted",
        f"Deleted user: {username}",
        context=context,
        user_id=admin.user_id,
        table_name="users",
        record_id=user_id,
    )
    return TransitionOutcome(None, side_effects)


async def set_user_status(
    db: AsyncSession,
    admin: Identity,
    user_id: int,
    is_active: bool | None = None,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """Activate or deactivate an account; None flips the current state."""
    user = await get_user_by_id(db, user_id)
    target = (not user.is_active) if is_active is None else is_active
    if not target:
        _check_deactivatable(admin, user)

    await db.execute(user_queries.update_user_fields(user.id, is_active=target))
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "User Status Changed",
        f"User {'activated' if target else 'deactivated'}: {user.username}",
        context=context,
        user_id=admin.user_id,
        table_name="users",
        record_id=user.id,
        new_values={"is_active": target},
    )
    return TransitionOutcome(user, side_effects)


async def reset_user_password(
    db: AsyncSession,
    admin: Identity,
    user_id: int,
    context: RequestContext | None = None,
) -> TransitionOutcome[CreatedUser]:
    """Replace the password with a generated temporary one."""
    user = await get_user_by_id(db, user_id)

    temp_password = generate_random_password()
    await db.execute(user_queries.set_password_hash(user.id, await hash_password_async(temp_password)))
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Password Reset",
        f"Password reset for user: {user.username}",
        context=context,
        user_id=admin.user_id,
        table_name="users",
        record_id=user.id,
    )
    return TransitionOutcome(CreatedUser(user=user, temp_password=temp_password), side_effects)


async def get_statistics(db: AsyncSession) -> tuple[UserStatistics, ActivityStatistics, int]:
    """User counts per role and state, audit activity, and pending requests."""
    result = await db.execute(queries.user_statistics())
    users = UserStatistics(**{k: v or 0 for k, v in result.one()._mapping.items()})

    now = datetime.now(timezone.utc)
    result = await db.execute(
        queries.activity_statistics(
            today=window_start(DateWindow.TODAY, now),
            week=window_start(DateWindow.WEEK, now),
            month=window_start(DateWindow.MONTH, now),
        )
    )
    activity = ActivityStatistics(**{k: v or 0 for k, v in result.one()._mapping.items()})

    result = await db.execute(queries.count_pending_requests())
    pending = result.scalar() or 0

    return users, activity, pending


async def report_summary(db: AsyncSession) -> tuple[dict[str, int], int, int]:
    """Active users per role, total active users, pending permission requests."""
    result = await db.execute(queries.count_active_users_by_role())
    by_role = {role.value: 0 for role in UserRole}
    for role, count in result.all():
        by_role[role] = count

    result = await db.execute(queries.count_pending_requests())
    pending = result.scalar() or 0

    return by_role, sum(by_role.values()), pending
