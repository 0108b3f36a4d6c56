# api/auth/queries.py
"""
SQLAlchemy statement builders for the credential store.

Every state transition on a user row is a single UPDATE. Token-consuming
updates are guarded by the token digest, so a token can only be used once
even when two requests race.
"""
from datetime import datetime

from sqlalchemy import select, update, func

from db_models.user import User


def _update_user(*criteria):
    return (
        update(User)
        .where(*criteria)
        .execution_options(synchronize_session=False)
    )


def select_user_by_id(user_id: int):
    return select(User).where(User.id == user_id)


def select_user_by_username(username: str):
    return select(User).where(User.username == username)


def select_user_by_email(email: str):
    return select(User).where(User.email == email)


def select_user_by_verification_token(digest: str):
    return select(User).where(User.email_verification_token == digest)


def select_user_by_reset_token(digest: str):
    return select(User).where(User.password_reset_token == digest)


def set_verification_token(user_id: int, digest: str, expires_at: datetime):
    return _update_user(User.id == user_id).values(
        email_verification_token=digest,
        email_verification_expires_at=expires_at,
    )


def clear_verification_token(user_id: int, digest: str):
    return _update_user(
        User.id == user_id,
        User.email_verification_token == digest,
    ).values(
        email_verification_token=None,
        email_verification_expires_at=None,
    )


def mark_email_verified(user_id: int, digest: str):
    """Consume the verification token and flag the email as verified."""
    return _update_user(
        User.id == user_id,
        User.email_verification_token == digest,
    ).values(
        email_verified=True,
        email_verification_token=None,
        email_verification_expires_at=None,
    )


def set_reset_token(user_id: int, digest: str, expires_at: datetime):
    """Replaces any outstanding reset token."""
    return _update_user(User.id == user_id).values(
        password_reset_token=digest,
        password_reset_expires_at=expires_at,
    )


def clear_reset_token(user_id: int, digest: str):
    return _update_user(
        User.id == user_id,
        User.password_reset_token == digest,
    ).values(
        password_reset_token=None,
        password_reset_expires_at=None,
    )


def reset_password_with_token(user_id: int, digest: str, password_hash: str):
    """Consume the reset token and replace the password hash in one statement."""
    return _update_user(
        User.id == user_id,
        User.password_reset_token == digest,
    ).values(
        password_hash=password_hash,
        password_reset_token=None,
        password_reset_expires_at=None,
        password_changed_at=func.now(),
    )


def set_password_hash(user_id: int, password_hash: str):
    """Replace the hash and void any outstanding reset token."""
    return _update_user(User.id == user_id).values(
        password_hash=password_hash,
        password_reset_token=None,
        password_reset_expires_at=None,
        password_changed_at=func.now(),
    )


def touch_last_login(user_id: int):
    return _update_user(User.id == user_id).values(last_login_at=func.now())


def update_user_fields(user_id: int, **values):
    """Partial update of the given columns."""
    return _update_user(User.id == user_id).values(**values)
