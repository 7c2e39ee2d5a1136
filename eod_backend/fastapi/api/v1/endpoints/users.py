"""
User management endpoints (admin only).
"""

from typing import Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.schemas.user import (
    UserApproval,
    UserCreate,
    UserDeleteResponse,
    UserListResponse,
    UserRead,
    UserUpdate,
)
from eod_backend.fastapi.crud import user as user_crud
from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.services.notifications import notify_user_created, unique_recipients
from eod_backend.security.dependencies import RequireAdmin

router = APIRouter()


def _not_found(user_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User with ID {user_id} not found"
    )


@router.get("", response_model=UserListResponse, summary="List Users")
async def list_users(
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    role: Optional[str] = Query(None, pattern="^(staff|admin|owner)$"),
    approved: Optional[bool] = Query(None, description="Filter by approval state")
):
    """List accounts, optionally only pending (``approved=false``) ones."""
    users = user_crud.get_users(db, skip=skip, limit=limit, role=role, approved=approved)
    return UserListResponse(
        users=[UserRead.model_validate(user) for user in users],
        total_count=user_crud.count_users(db, role=role, approved=approved)
    )


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create User"
)
async def create_user(
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    """
    Create an account directly, approved by default.

    Admins get a notice and the new user a welcome email with the login link.
    """
    user = UserRead.model_validate(user_crud.create_user(db, user_data, actor=current_admin))
    recipients = unique_recipients(
        [admin.email for admin in user_crud.get_admins(db)],
        global_settings.notification_emails,
    )
    background_tasks.add_task(
        notify_user_created,
        recipients,
        user.email,
        user.display_name,
        user.role,
        current_admin.display_name or current_admin.email,
    )
    return user


@router.get("/{user_id}", response_model=UserRead, summary="Get User")
async def get_user(
    user_id: UUID,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    user = user_crud.get_user(db, user_id)
    if not user:
        raise _not_found(user_id)
    return UserRead.model_validate(user)


@router.put("/{user_id}", response_model=UserRead, summary="Update User")
async def update_user(
    user_id: UUID,
    user_update: UserUpdate,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    """
    Update an account.

    - **venue_ids** replaces the whole venue access list
    - Admins cannot change their own role or deactivate themselves
    """
    user = user_crud.update_user(db, user_id, user_update, actor=current_admin)
    if not user:
        raise _not_found(user_id)
    return UserRead.model_validate(user)


@router.patch("/{user_id}/approval", response_model=UserRead, summary="Approve User")
async def set_user_approval(
    user_id: UUID,
    approval: UserApproval,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    """Approve a pending sign-up, or revoke an approval."""
    user = user_crud.set_user_approval(db, user_id, approval.approved, actor=current_admin)
    if not user:
        raise _not_found(user_id)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", response_model=UserDeleteResponse, summary="Delete User")
async def delete_user(
    user_id: UUID,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    """
    Delete an account.

    The user's reports are transferred to the designated reports admin
    (``REPORTS_FALLBACK_ADMIN_EMAIL``) or, failing that, to the earliest
    active admin. Reports are never deleted with their author.

    **Errors:**
    - **400**: Deleting your own account
    - **409**: Deleting the designated reports admin, or no admin left to
      receive the reports
    """
    try:
        result = user_crud.delete_user(db, user_id, actor=current_admin)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete user: {str(e)}"
        )

    if result is None:
        raise _not_found(user_id)

    transferred, recipient_id = result
    return UserDeleteResponse(
        message="User deleted successfully",
        reports_transferred=transferred,
        transferred_to=recipient_id
    )
