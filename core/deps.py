# core/deps.py
"""
FastAPI dependencies for authentication and authorization.

The gate is stateless: identity and role come from the verified token alone,
with no database lookup. A demoted user keeps the old role until the token
expires.
"""
from dataclasses import dataclass
from typing import Annotated, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import ForbiddenError, UnauthenticatedError
from core.security import InvalidToken, TokenService, get_token_service
from db_models.user import UserRole

# Bearer scheme for token extraction from Authorization header
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as decoded from the bearer token."""
    user_id: int
    role: UserRole


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from, for audit entries."""
    ip_address: str | None
    user_agent: str | None


async def get_current_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> Identity:
    """
    Dependency to get the current caller from the bearer token.

    Raises:
        UnauthenticatedError: If the token is missing or fails verification
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("No token provided")

    claims = tokens.verify(credentials.credentials)
    if isinstance(claims, InvalidToken):
        raise UnauthenticatedError("Invalid or expired token")

    identity = Identity(user_id=claims.user_id, role=claims.role)
    request.state.identity = identity
    return identity


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> Identity | None:
    """Like get_current_identity, but returns None instead of raising."""
    if credentials is None:
        return None
    claims = tokens.verify(credentials.credentials)
    if isinstance(claims, InvalidToken):
        return None
    return Identity(user_id=claims.user_id, role=claims.role)


def require_roles(*allowed: UserRole) -> Callable:
    """Build a dependency that admits only callers whose token role is in `allowed`."""
    allowed_roles = tuple(UserRole(r) for r in allowed)

    async def dependency(
        identity: Annotated[Identity, Depends(get_current_identity)],
    ) -> Identity:
        if identity.role not in allowed_roles:
            raise ForbiddenError(
                extra={
                    "required_roles": [r.value for r in allowed_roles],
                    "user_role": identity.role.value,
                },
            )
        return identity

    return dependency


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# Type aliases for cleaner endpoint signatures
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
SuperAdminOnly = Annotated[Identity, Depends(require_roles(UserRole.SUPER_ADMIN))]
AdminOrAbove = Annotated[Identity, Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN))]
AuditReaders = Annotated[Identity, Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.AUDITOR))]
ClientContext = Annotated[RequestContext, Depends(get_request_context)]
