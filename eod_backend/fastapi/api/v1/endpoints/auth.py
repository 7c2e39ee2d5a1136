"""
Authentication endpoints.

This module provides login, public staff sign-up, password reset and the
current user's profile.
"""

import logging
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.schemas.user import (
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    UserLogin,
    UserRead,
    UserSignup,
    UserSignupResponse,
    UserTokenResponse,
)
from eod_backend.fastapi.crud import user as user_crud
from eod_backend.fastapi.services.notifications import (
    notify_password_reset,
    notify_signup,
    unique_recipients,
)
from eod_backend.security.auth import (
    create_password_reset_token,
    create_user_token,
    password_fingerprint,
    verify_password_reset_token,
)
from eod_backend.security.dependencies import RequireAnyAuth

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=UserTokenResponse, summary="Login")
async def login(
    user_login: UserLogin,
    db: Session = Depends(get_sync_db)
):
    """
    Authenticate a user and return a JWT access token.

    **Errors:**
    - **401**: Invalid email or password
    - **403**: Account deactivated or still awaiting approval
    """
    user = user_crud.authenticate_user(db, user_login.email, user_login.password)
    if not user:
        logger.info("Failed login for %s", user_login.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

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

    access_token = create_user_token(str(user.id), user.email, user.role)
    logger.info("User %s logged in", user.email)

    return UserTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=global_settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user)
    )


@router.post(
    "/signup",
    response_model=UserSignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up"
)
async def signup(
    signup_data: UserSignup,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_sync_db)
):
    """
    Register a staff account.

    The account cannot log in until an admin approves it. Admins are
    notified by email.
    """
    user = user_crud.signup_user(db, signup_data)

    recipients = unique_recipients(
        [admin.email for admin in user_crud.get_admins(db)],
        global_settings.notification_emails,
    )
    background_tasks.add_task(notify_signup, recipients, user.email, user.display_name)

    return UserSignupResponse(
        message="Account created. An administrator must approve it before you can log in.",
        user=UserRead.model_validate(user)
    )


@router.get("/me", response_model=UserRead, summary="Current User")
async def get_me(current_user: User = RequireAnyAuth):
    """Profile of the authenticated user."""
    return UserRead.model_validate(current_user)


RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent."


@router.post(
    "/password-reset/request",
    response_model=MessageResponse,
    summary="Request Password Reset"
)
async def request_password_reset(
    reset_request: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_sync_db)
):
    """
    Email a password reset link.

    The answer is the same whether or not the account exists.
    """
    user = user_crud.get_user_by_email(db, reset_request.email)
    if user and user.is_active:
        token = create_password_reset_token(str(user.id), user.email, user.password_hash)
        reset_link = f"{global_settings.CLIENT_URL.rstrip('/')}/auth/reset-password?token={token}"
        background_tasks.add_task(notify_password_reset, user.email, reset_link)
        logger.info("Password reset requested for %s", user.email)
    else:
        logger.info("Password reset requested for unknown or inactive account %s", reset_request.email)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Reset Password"
)
async def confirm_password_reset(
    reset_confirm: PasswordResetConfirm,
    db: Session = Depends(get_sync_db)
):
    """
    Set a new password with the emailed token.

    **Errors:**
    - **400**: Token invalid, expired or already used
    """
    payload = verify_password_reset_token(reset_confirm.token)
    try:
        user_id = UUID(payload["sub"])
    except (TypeError, ValueError):
        user_id = None

    user = user_crud.get_user(db, user_id) if user_id else None
    if not user or not user.is_active or password_fingerprint(user.password_hash) != payload["pwd"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired password reset token"
        )

    user_crud.reset_user_password(db, user.id, reset_confirm.new_password)
    return MessageResponse(message="Password has been reset. You can now log in.")
