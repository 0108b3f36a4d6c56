# api/auth/db_manager.py
"""
Business logic for the authentication flow.

Account states: Unverified -> Verified -> (Active | Deactivated).

Each transition commits its own change first, then appends an audit entry and
sends any email. Those two side channels are best effort and are reported in
the returned TransitionOutcome rather than raised.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.deps import RequestContext
from core.errors import (
    AccountDeactivatedError,
    ConflictError,
    EmailNotVerifiedError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from core.notifications import Notifier
from core.outcomes import SideEffects, TransitionOutcome, deliver_best_effort
from core.security import (
    IssuedToken,
    TokenService,
    generate_one_time_token,
    hash_one_time_token,
    hash_password_async,
    is_expired,
    verify_password_async,
)
from db_models.user import ROLE_PERMISSIONS, Permission, User, UserRole
from api.audit_logs.db_manager import record_action
from . import queries

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    token: IssuedToken
    user: User


def validate_new_password(password: str) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        )


async def _get_user(db: AsyncSession, stmt) -> User | None:
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
    """Get a user by ID. Raises NotFoundError if not found."""
    user = await _get_user(db, queries.select_user_by_id(user_id))
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register_user(
    db: AsyncSession,
    notifier: Notifier,
    *,
    username: str,
    email: str,
    password: str,
    role: UserRole,
    phone_number: str | None = None,
    department: str | None = None,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """
    Create an unverified account and email a single-use verification token.

    Uniqueness of username and email is enforced by the database constraints;
    the losing side of a concurrent registration gets ConflictError.

    Raises:
        ValidationError: If the password is too short
        ConflictError: If the username or email is already taken
    """
    validate_new_password(password)

    token = generate_one_time_token()
    user = User(
        username=username,
        email=email,
        password_hash=await hash_password_async(password),
        role=UserRole(role).value,
        phone_number=phone_number,
        department=department,
        is_active=True,
        email_verified=False,
        email_verification_token=hash_one_time_token(token),
        email_verification_expires_at=datetime.now(timezone.utc)
        + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
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
        "User Registered",
        f"New user registered: {user.username} ({user.role})",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    side_effects.notification_sent = await deliver_best_effort(
        notifier.send_verification_email(user.email, user.username, token),
        f"verification email for user {user.id}",
    )
    return TransitionOutcome(user, side_effects)


async def verify_email(
    db: AsyncSession,
    notifier: Notifier,
    token: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """
    Consume a verification token.

    Raises:
        InvalidTokenError: If the token is unknown or already used
        ExpiredTokenError: If the token has expired (it is cleared as well)
    """
    digest = hash_one_time_token(token)
    user = await _get_user(db, queries.select_user_by_verification_token(digest))
    if user is None:
        raise InvalidTokenError("Invalid or already used verification token")

    if is_expired(user.email_verification_expires_at):
        await db.execute(queries.clear_verification_token(user.id, digest))
        await db.commit()
        await record_action(
            db,
            "Verification Token Expired",
            f"Expired verification token cleared for: {user.username}",
            context=context,
            user_id=user.id,
            table_name="users",
            record_id=user.id,
        )
        raise ExpiredTokenError("Verification token has expired")

    result = await db.execute(queries.mark_email_verified(user.id, digest))
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidTokenError("Invalid or already used verification token")
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Email Verified",
        f"Email verified for: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    side_effects.notification_sent = await deliver_best_effort(
        notifier.send_welcome_email(user.email, user.username, user.role),
        f"welcome email for user {user.id}",
    )
    return TransitionOutcome(user, side_effects)


async def resend_verification(
    db: AsyncSession,
    notifier: Notifier,
    email: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[User | None]:
    """
    Issue a fresh verification token for an active, unverified account.

    Unknown or already verified addresses are a silent no-op so the caller
    cannot tell which emails are registered.
    """
    user = await _get_user(db, queries.select_user_by_email(email))
    if user is None or not user.is_active or user.email_verified:
        return TransitionOutcome(None)

    token = generate_one_time_token()
    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS)
    await db.execute(queries.set_verification_token(user.id, hash_one_time_token(token), expires_at))
    await db.commit()

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Verification Resent",
        f"Verification email re-issued for: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    side_effects.notification_sent = await deliver_best_effort(
        notifier.send_verification_email(user.email, user.username, token),
        f"verification email for user {user.id}",
    )
    return TransitionOutcome(user, side_effects)


async def login(
    db: AsyncSession,
    tokens: TokenService,
    username: str,
    password: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[LoginResult]:
    """
    Check credentials and issue a bearer token.

    Raises:
        InvalidCredentialsError: Unknown username or wrong password (same error for both)
        AccountDeactivatedError: If the account is inactive
        EmailNotVerifiedError: If the email address has not been verified yet
    """
    user = await _get_user(db, queries.select_user_by_username(username))
    password_ok = await verify_password_async(password, user.password_hash if user else None)
    if user is None or not password_ok:
        logger.info("Failed login attempt for username=%r", username)
        raise InvalidCredentialsError()

    if not user.is_active:
        raise AccountDeactivatedError()

    if not user.email_verified:
        raise EmailNotVerifiedError()

    issued = tokens.issue(user.id, UserRole(user.role))

    await db.execute(queries.touch_last_login(user.id))
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "User Login",
        f"User logged in: {user.username}",
        context=context,
        user_id=user.id,
    )
    return TransitionOutcome(LoginResult(token=issued, user=user), side_effects)


async def request_password_reset(
    db: AsyncSession,
    notifier: Notifier,
    email: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[User | None]:
    """
    Email a short-lived reset token to an active account.

    Always succeeds from the caller's point of view; an unknown email is a
    silent no-op. Issuing a token replaces any outstanding one.
    """
    user = await _get_user(db, queries.select_user_by_email(email))
    if user is None or not user.is_active:
        return TransitionOutcome(None)

    token = generate_one_time_token()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)
    await db.execute(queries.set_reset_token(user.id, hash_one_time_token(token), expires_at))
    await db.commit()

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Password Reset Requested",
        f"Password reset requested for: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    side_effects.notification_sent = await deliver_best_effort(
        notifier.send_password_reset_email(user.email, user.username, token),
        f"password reset email for user {user.id}",
    )
    return TransitionOutcome(user, side_effects)


async def reset_password(
    db: AsyncSession,
    token: str,
    new_password: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """
    Consume a reset token and replace the password.

    Raises:
        ValidationError: If the new password is too short
        InvalidTokenError: If the token is unknown or already used
        ExpiredTokenError: If the token has expired (it is cleared as well)
    """
    validate_new_password(new_password)

    digest = hash_one_time_token(token)
    user = await _get_user(db, queries.select_user_by_reset_token(digest))
    if user is None:
        raise InvalidTokenError("Invalid or already used reset token")

    if is_expired(user.password_reset_expires_at):
        await db.execute(queries.clear_reset_token(user.id, digest))
        await db.commit()
        await record_action(
            db,
            "Reset Token Expired",
            f"Expired password reset token cleared for: {user.username}",
            context=context,
            user_id=user.id,
            table_name="users",
            record_id=user.id,
        )
        raise ExpiredTokenError("Reset token has expired")

    password_hash = await hash_password_async(new_password)
    result = await db.execute(queries.reset_password_with_token(user.id, digest, password_hash))
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidTokenError("Invalid or already used reset token")
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Password Reset",
        f"Password reset completed for: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    return TransitionOutcome(user, side_effects)


async def change_password(
    db: AsyncSession,
    user_id: int,
    current_password: str,
    new_password: str,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """
    Change the password of an authenticated user.

    Raises:
        NotFoundError: If the account no longer exists
        InvalidCredentialsError: If current_password does not match
        ValidationError: If the new password is too short
    """
    user = await get_user_by_id(db, user_id)
    if not await verify_password_async(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")
    validate_new_password(new_password)

    password_hash = await hash_password_async(new_password)
    await db.execute(queries.set_password_hash(user.id, password_hash))
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Password Changed",
        f"User changed password: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
    )
    return TransitionOutcome(user, side_effects)


async def update_profile(
    db: AsyncSession,
    user_id: int,
    changes: dict,
    context: RequestContext | None = None,
) -> TransitionOutcome[User]:
    """Update phone number, department and profile picture of the caller."""
    user = await get_user_by_id(db, user_id)
    allowed = {"phone_number", "department", "profile_picture"}
    changes = {k: v for k, v in changes.items() if k in allowed}
    if not changes:
        return TransitionOutcome(user)

    old_values = {k: getattr(user, k) for k in changes}
    await db.execute(queries.update_user_fields(user.id, **changes))
    await db.commit()
    await db.refresh(user)

    side_effects = SideEffects()
    side_effects.audit_recorded = await record_action(
        db,
        "Profile Updated",
        f"Profile updated for: {user.username}",
        context=context,
        user_id=user.id,
        table_name="users",
        record_id=user.id,
        old_values=old_values,
        new_values=changes,
    )
    return TransitionOutcome(user, side_effects)


def permissions_for(role: UserRole) -> list[Permission]:
    return sorted(ROLE_PERMISSIONS.get(UserRole(role), frozenset()), key=lambda p: p.value)
