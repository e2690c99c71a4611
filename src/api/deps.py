"""FastAPI dependency injection functions."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.core.database import get_db
from src.core.rate_limiter import get_rate_limiter
from src.models import BackofficeRole, UserProfile
from src.schemas.auth import UserContext
from src.services.backoffice_service import BackofficeAccess, BackofficeService
from src.services.identity_service import IdentityService

ORDER_LOOKUP_ROUTE_KEY = "order_lookup"

DbSession = Annotated[Session, Depends(get_db)]


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    This dependency requires a valid JWT token in the Authorization header.
    Use this for endpoints that require authentication.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract the token from "Bearer <token>" format
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_jwt(parts[1])
        return payload.to_user_context()

    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if an Authorization header is present.

    A present but invalid token still fails with 401.
    """
    if not authorization:
        return None
    return await get_current_user(authorization)


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


async def get_current_profile(user: CurrentUser, db: DbSession) -> UserProfile:
    """Resolve (creating if needed) the profile of the authenticated caller."""
    return await IdentityService(db).ensure_profile_for_user(user)


async def get_optional_profile(user: OptionalUser, db: DbSession) -> UserProfile | None:
    if user is None:
        return None
    return await IdentityService(db).ensure_profile_for_user(user)


CurrentProfile = Annotated[UserProfile, Depends(get_current_profile)]
OptionalProfile = Annotated[UserProfile | None, Depends(get_optional_profile)]


# Backoffice access


def require_backoffice_role(min_role: BackofficeRole) -> Callable[..., Awaitable[BackofficeAccess]]:
    """Build a dependency that admits callers with at least ``min_role``.

    Raises (from the dependency):
        HTTPException: 401 without a valid token.
        AuthorizationError: 403 without sufficient backoffice access.
    """

    async def dependency(user: CurrentUser, db: DbSession) -> BackofficeAccess:
        return await BackofficeService(db).require_access(user, min_role)

    return dependency


StaffAccess = Annotated[BackofficeAccess, Depends(require_backoffice_role(BackofficeRole.STAFF))]
AdminAccess = Annotated[BackofficeAccess, Depends(require_backoffice_role(BackofficeRole.ADMIN))]
SuperadminAccess = Annotated[BackofficeAccess, Depends(require_backoffice_role(BackofficeRole.SUPERADMIN))]


# Rate limiting


def get_client_ip(request: Request) -> str:
    """Client address: first X-Forwarded-For hop, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "local"


async def check_order_lookup_rate_limit(request: Request, db: DbSession) -> None:
    """Limit order lookups per client IP.

    Raises:
        RateLimitError: The caller exhausted the current window.
    """
    await get_rate_limiter().enforce(db, ORDER_LOOKUP_ROUTE_KEY, get_client_ip(request))


OrderLookupRateLimit = Annotated[None, Depends(check_order_lookup_rate_limit)]
