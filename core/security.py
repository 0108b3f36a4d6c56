# core/security.py
"""
Security utilities: password hashing, single-use tokens and the JWT token service.
"""
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import bcrypt
from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt

from config import settings
from db_models.user import UserRole

# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_BYTES = 72


def get_secret_key() -> str:
    """Get JWT secret key from settings or generate one for development."""
    # Try to get from settings, fall back to a development key
    secret = getattr(settings, 'SECRET_KEY', None)
    if secret:
        return secret
    # Development fallback - NOT for production!
    return "dev-secret-key-change-in-production-abc123xyz"


# ---------- Passwords ----------

def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8')[:BCRYPT_MAX_BYTES], salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8')[:BCRYPT_MAX_BYTES],
            hashed_password.encode('utf-8')
        )
    except (ValueError, TypeError):
        return False


@lru_cache
def _dummy_hash() -> str:
    return get_password_hash(secrets.token_urlsafe(16))


async def hash_password_async(password: str) -> str:
    """bcrypt is deliberately slow; keep it off the event loop."""
    return await run_in_threadpool(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str | None) -> bool:
    """
    Verify off the event loop. With no stored hash a dummy comparison still runs,
    so an unknown username costs the same as a wrong password.
    """
    if hashed_password is None:
        await run_in_threadpool(verify_password, plain_password, _dummy_hash())
        return False
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


def generate_random_password(length: int = 12) -> str:
    """Generate a secure random password."""
    return secrets.token_urlsafe(length)


# ---------- Single-use tokens (email verification, password reset) ----------

def generate_one_time_token() -> str:
    return secrets.token_hex(32)


def hash_one_time_token(token: str) -> str:
    """Digest stored in place of the token itself."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """Naive datetimes (SQLite round-trips) are read as UTC."""
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or datetime.now(timezone.utc))


# ---------- Bearer tokens ----------

@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: UserRole
    expires_at: datetime


@dataclass(frozen=True)
class InvalidToken:
    reason: str


class TokenService:
    """
    Issues and verifies signed access tokens.

    Stateless: the secret is fixed at construction and there is no revocation
    list, so a token stays valid (with the role it was issued with) until `exp`.
    """

    TOKEN_TYPE = "access"

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    def issue(
        self,
        user_id: int,
        role: UserRole,
        expires_delta: timedelta | None = None,
    ) -> IssuedToken:
        """
        Create a signed access token.

        Args:
            user_id: Subject of the token
            role: Role at issuance time, trusted by the authorization gate until expiry
            expires_delta: Optional custom lifetime

        Returns:
            The encoded token and its expiry
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self._expire_minutes))
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "role": UserRole(role).value,
            "iat": now,
            "exp": expire,
            "type": self.TOKEN_TYPE,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expire)

    def verify(self, token: str) -> TokenClaims | InvalidToken:
        """Validate signature, expiry and claims. Never raises on bad input."""
        if not token or not isinstance(token, str):
            return InvalidToken("missing token")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            return InvalidToken(str(exc) or "invalid token")

        if payload.get("type") != self.TOKEN_TYPE:
            return InvalidToken("invalid token type")

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            return InvalidToken("invalid subject")

        try:
            role = UserRole(payload.get("role"))
        except ValueError:
            return InvalidToken("invalid role")

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            return InvalidToken("missing expiry")

        return TokenClaims(user_id=user_id, role=role, expires_at=expires_at)


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service, built once from settings."""
    return TokenService(
        secret=get_secret_key(),
        algorithm=settings.JWT_ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
