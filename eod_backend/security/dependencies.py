"""
Authentication dependencies for FastAPI.

This module provides dependency functions for protecting FastAPI routes
and extracting the authenticated user. Roles are read from the database on
every request so that a role change or deactivation applies immediately.
"""

from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.user import User, ADMIN_ROLES
from eod_backend.security.auth import verify_access_token


# HTTP Bearer token scheme
security = HTTPBearer()


def is_admin_role(role: str) -> bool:
    """Admin and owner form the upper level of the two-level role check."""
    return role in ADMIN_ROLES


async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """Extract and validate the JWT token from the Authorization header."""
    return verify_access_token(credentials.credentials)


async def get_current_user(
    token_data: dict = Depends(get_current_user_token),
    db: Session = Depends(get_sync_db)
) -> User:
    """
    Get the current authenticated user of any role.

    Args:
        token_data: Decoded JWT token payload
        db: Database session

    Returns:
        User instance for the authenticated account

    Raises:
        HTTPException: 401 if the user no longer exists, 403 if the account
            is deactivated or still awaiting approval
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = UUID(str(token_data.get("sub")))
    except ValueError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    if not user.approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is awaiting approval"
        )

    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current user, requiring the admin or owner role.

    Raises:
        HTTPException: 403 for staff accounts
    """
    if not is_admin_role(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions. Admin access required."
        )
    return current_user


# Convenience dependencies for different permission levels
RequireAdmin = Depends(get_current_admin)
RequireAnyAuth = Depends(get_current_user)
