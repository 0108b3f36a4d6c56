# api/auth/views.py
"""
Authentication and profile endpoints.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_session
from core.deps import ClientContext, CurrentIdentity, OptionalIdentity
from core.notifications import Notifier, get_notifier
from core.security import TokenService, get_token_service
from api.audit_logs.db_manager import record_action
from .models import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordChange,
    PasswordResetConfirm,
    PermissionsResponse,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    RegisterResponse,
    TokenRequest,
    UserResponse,
)
from . import db_manager


router = APIRouter(prefix="/auth", tags=["authentication"])

NotifierDep = Annotated[Notifier, Depends(get_notifier)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]

RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."
VERIFICATION_RESENT_MESSAGE = "If an unverified account with that email exists, a new verification email has been sent."


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    payload: RegisterRequest,
    notifier: NotifierDep,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> RegisterResponse:
    """
    Create an unverified account. A verification link is emailed; the token
    itself is never part of the response.
    """
    outcome = await db_manager.register_user(
        db,
        notifier,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        phone_number=payload.phone_number,
        department=payload.department,
        context=context,
    )
    return RegisterResponse(
        message="User registered successfully. Please check your email for verification instructions.",
        user=UserResponse.model_validate(outcome.value),
    )


@router.post("/login", response_model=LoginResponse, summary="Login and get a bearer token")
async def login(
    credentials: LoginRequest,
    tokens: TokenServiceDep,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> LoginResponse:
    """
    Returns a bearer token for verified, active accounts.
    Include it in the Authorization header as: Bearer <token>
    """
    outcome = await db_manager.login(
        db, tokens, credentials.username, credentials.password, context=context
    )
    result = outcome.value
    return LoginResponse(
        token=result.token.token,
        expires_at=result.token.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/logout", response_model=MessageResponse, summary="Logout")
async def logout(
    identity: OptionalIdentity,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Tokens are stateless; the client discards its copy. Recorded when the token is valid."""
    if identity is not None:
        await record_action(
            db,
            "User Logout",
            f"User {identity.user_id} logged out",
            context=context,
            user_id=identity.user_id,
        )
    return MessageResponse(message="Logged out successfully")


@router.post("/verify-email", response_model=MessageResponse, summary="Verify email address")
async def verify_email(
    payload: TokenRequest,
    notifier: NotifierDep,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await db_manager.verify_email(db, notifier, payload.token, context=context)
    return MessageResponse(
        message="Email verified successfully. Welcome to the Council Management System!"
    )


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Resend the verification email",
)
async def resend_verification(
    payload: EmailRequest,
    notifier: NotifierDep,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await db_manager.resend_verification(db, notifier, payload.email, context=context)
    return MessageResponse(message=VERIFICATION_RESENT_MESSAGE)


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    summary="Request a password reset email",
)
async def request_password_reset(
    payload: EmailRequest,
    notifier: NotifierDep,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Same response whether or not the email is registered."""
    await db_manager.request_password_reset(db, notifier, payload.email, context=context)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password with a token")
async def reset_password(
    payload: PasswordResetConfirm,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await db_manager.reset_password(db, payload.token, payload.new_password, context=context)
    return MessageResponse(message="Password reset successfully")


@router.put("/change-password", response_model=MessageResponse, summary="Change password")
async def change_password(
    payload: PasswordChange,
    identity: CurrentIdentity,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Change the current user's password."""
    await db_manager.change_password(
        db,
        identity.user_id,
        payload.current_password,
        payload.new_password,
        context=context,
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/profile", response_model=ProfileResponse, summary="Get current user")
async def get_profile(
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    user = await db_manager.get_user_by_id(db, identity.user_id)
    return ProfileResponse(data=UserResponse.model_validate(user))


@router.put("/profile", response_model=ProfileResponse, summary="Update current user profile")
async def update_profile(
    updates: ProfileUpdate,
    identity: CurrentIdentity,
    context: ClientContext,
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Only the fields present in the body are changed."""
    outcome = await db_manager.update_profile(
        db,
        identity.user_id,
        updates.model_dump(exclude_unset=True),
        context=context,
    )
    return ProfileResponse(data=UserResponse.model_validate(outcome.value))


@router.get("/permissions", response_model=PermissionsResponse, summary="Capabilities of the caller's role")
async def get_permissions(identity: CurrentIdentity) -> PermissionsResponse:
    return PermissionsResponse(
        role=identity.role,
        permissions=db_manager.permissions_for(identity.role),
    )
