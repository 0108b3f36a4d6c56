# api/auth/models.py
"""
Pydantic models for authentication endpoints.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, ConfigDict

from db_models.user import Permission, UserRole


class RegisterRequest(BaseModel):
    """Self-registration."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    role: UserRole
    phone_number: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    """Login credentials."""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class TokenRequest(BaseModel):
    """Email verification token."""
    token: str = Field(..., min_length=1, max_length=256)


class EmailRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=1, max_length=128)


class PasswordChange(BaseModel):
    """Request to change password."""
    current_password: str = Field(..., max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    phone_number: str | None = Field(None, max_length=20)
    department: str | None = Field(None, max_length=100)
    profile_picture: str | None = Field(None, max_length=500)


class UserResponse(BaseModel):
    """User data response. Never includes the password hash or tokens."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: UserRole
    is_active: bool
    email_verified: bool
    phone_number: str | None = None
    department: str | None = None
    profile_picture: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    last_login_at: datetime | None = None


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    """Bearer token plus the public user record."""
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class ProfileResponse(BaseModel):
    success: bool = True
    data: UserResponse


class PermissionsResponse(BaseModel):
    success: bool = True
    role: UserRole
    permissions: list[Permission]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
