"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions that verify the identity provider's
access token, resolve the caller to an active user row, enforce role gates and
expose the request-scoped database session.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
)
from ponno.core.logging import get_logger, set_user_id
from ponno.core.security import verify_access_token
from ponno.database.connection import get_db
from ponno.database.models.user import User, UserRole
from ponno.services.users.repository import UserRepository

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate the bearer token and retrieve the authenticated user.

    Args:
        credentials: HTTP Bearer token from Authorization header
        db: Database session

    Returns:
        User: Authenticated active user

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or expired
        NotFoundError: 404 USER_NOT_FOUND if no profile exists for the token
        PermissionDeniedError: 403 ACCOUNT_INACTIVE if the account is disabled
    """
    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise AuthenticationError("Access token required", code="MISSING_TOKEN")

    user_id = verify_access_token(credentials.credentials)

    user = await UserRepository(db).get_user(user_id)

    if user is None:
        logger.warning("Authentication failed: User not found", user_id=str(user_id))
        raise NotFoundError(
            "User profile not found",
            code="USER_NOT_FOUND",
            user_id=str(user_id),
        )

    if not user.is_active:
        logger.warning(
            "Authentication failed: User account is inactive",
            user_id=str(user.id),
        )
        raise PermissionDeniedError(
            "Account is deactivated",
            code="ACCOUNT_INACTIVE",
            user_id=str(user.id),
        )

    set_user_id(str(user.id))
    logger.debug(
        "User authenticated",
        user_id=str(user.id),
        role=user.role.value,
    )

    return user


def require_role(*allowed_roles: UserRole):
    """
    Create a dependency that requires specific user roles.

    Args:
        *allowed_roles: UserRole values that are allowed

    Returns:
        Callable: Dependency function that validates user role

    Example:
        @router.post("/districts", dependencies=[Depends(require_role(UserRole.ADMIN))])
        async def create_district():
            ...
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                "Access denied: Insufficient permissions",
                user_id=str(current_user.id),
                user_role=current_user.role.value,
                required_roles=[role.value for role in allowed_roles],
            )
            raise PermissionDeniedError(
                "Insufficient permissions",
                user_id=str(current_user.id),
                required_roles=[role.value for role in allowed_roles],
            )

        return current_user

    return role_checker


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_role(UserRole.ADMIN))]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
