"""
JWT authentication utilities for the FastAPI application.

This module provides functions for creating and validating the bearer
tokens issued on login.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import HTTPException, status

from eod_backend.fastapi.core.init_settings import global_settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing token payload data (sub, email, role)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token as string
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=global_settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now
    })

    return jwt.encode(
        to_encode,
        global_settings.JWT_SECRET_KEY,
        algorithm=global_settings.JWT_ALGORITHM
    )


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        Dictionary containing decoded token payload

    Raises:
        HTTPException: If token is invalid, expired, or malformed
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            global_settings.JWT_SECRET_KEY,
            algorithms=[global_settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise credentials_exception

    if payload.get("sub") is None or payload.get("purpose") is not None:
        raise credentials_exception
    return payload


def create_user_token(user_id: str, email: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token for a user account.

    Example:
        >>> token = create_user_token("123e4567-e89b-12d3-a456-426614174000", "anna@example.com", "staff")
        >>> verify_access_token(token)["role"]
        'staff'
    """
    token_data = {
        "sub": user_id,
        "email": email,
        "role": role
    }

    return create_access_token(token_data, expires_delta)


PASSWORD_RESET_PURPOSE = "password_reset"


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a stored hash; changes whenever the password does."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_password_reset_token(user_id: str, email: str, password_hash: str) -> str:
    """
    Create a single-use password reset token.

    The token embeds a fingerprint of the current password hash, so it stops
    working once the password is changed.
    """
    token_data = {
        "sub": user_id,
        "email": email,
        "purpose": PASSWORD_RESET_PURPOSE,
        "pwd": password_fingerprint(password_hash),
    }
    return create_access_token(
        token_data,
        timedelta(minutes=global_settings.PASSWORD_RESET_EXPIRE_MINUTES)
    )


def verify_password_reset_token(token: str) -> Dict[str, Any]:
    """
    Decode a password reset token.

    Raises:
        HTTPException: 400 if the token is invalid, expired or not a reset token
    """
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid or expired password reset token",
    )
    try:
        payload = jwt.decode(
            token,
            global_settings.JWT_SECRET_KEY,
            algorithms=[global_settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise invalid from None

    if payload.get("purpose") != PASSWORD_RESET_PURPOSE or not payload.get("sub") or not payload.get("pwd"):
        raise invalid
    return payload
