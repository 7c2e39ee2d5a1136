"""
User CRUD operations.

This module provides database operations for user accounts including
sign-up, approval, creation, retrieval, updating and deletion with report
hand-over.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID
from datetime import datetime, timezone
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import asc
from fastapi import HTTPException, status

from eod_backend.fastapi.core.init_settings import global_settings
from eod_backend.fastapi.core.utils import normalize_email
from eod_backend.fastapi.crud.report import transfer_reports
from eod_backend.fastapi.models.user import User, UserRole, ADMIN_ROLES
from eod_backend.fastapi.models.venue import Venue
from eod_backend.fastapi.schemas.user import UserCreate, UserSignup, UserUpdate
from eod_backend.security.password import hash_password, verify_password

logger = logging.getLogger(__name__)


class UserCRUD:
    """CRUD operations for User model."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def _ensure_email_free(self, email: str, exclude_id: Optional[UUID] = None) -> None:
        existing = self.get_user_by_email(email)
        if existing and existing.id != exclude_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Email '{email}' is already registered"
            )

    def _load_venues(self, venue_ids: List[UUID]) -> List[Venue]:
        if not venue_ids:
            return []
        venues = self.db.query(Venue).filter(Venue.id.in_(venue_ids)).all()
        missing = set(venue_ids) - {venue.id for venue in venues}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Venues not found: {', '.join(sorted(str(v) for v in missing))}"
            )
        return venues

    @staticmethod
    def _check_role_authority(actor: Optional[User], role: str) -> None:
        # Only owners may hand out or manage the owner role
        if actor is not None and role == UserRole.OWNER.value and actor.role != UserRole.OWNER.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only an owner can manage owner accounts"
            )

    def create_user(self, user_data: UserCreate, actor: Optional[User] = None) -> User:
        """
        Create a user account directly (admin path, initial admin, scripts).

        Args:
            user_data: Account data including role and venue access
            actor: Admin creating the account, None for system bootstrap

        Returns:
            Created User instance

        Raises:
            HTTPException: 409 if the email is taken, 403 when a non-owner
                creates an owner
        """
        email = normalize_email(user_data.email)
        self._ensure_email_free(email)
        self._check_role_authority(actor, user_data.role)

        now = datetime.now(timezone.utc)
        db_user = User(
            email=email,
            display_name=user_data.display_name,
            password_hash=hash_password(user_data.password),
            role=user_data.role,
            approved=user_data.approved,
            approved_by=actor.id if (actor and user_data.approved) else None,
            approved_at=now if user_data.approved else None,
            is_active=user_data.is_active,
        )
        db_user.venues = self._load_venues(user_data.venue_ids)

        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)

        logger.info("User %s created with role %s", db_user.email, db_user.role)
        return db_user

    def signup(self, signup_data: UserSignup) -> User:
        """
        Register a staff account that waits for admin approval.

        Raises:
            HTTPException: 409 if the email is taken
        """
        email = normalize_email(signup_data.email)
        self._ensure_email_free(email)

        db_user = User(
            email=email,
            display_name=signup_data.display_name,
            password_hash=hash_password(signup_data.password),
            role=UserRole.STAFF.value,
            approved=False,
            is_active=True,
        )
        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)

        logger.info("New sign-up pending approval: %s", db_user.email)
        return db_user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, None otherwise."""
        db_user = self.get_user_by_email(email)
        if not db_user or not verify_password(password, db_user.password_hash):
            return None
        return db_user

    def get_user(self, user_id: UUID) -> Optional[User]:
        return (
            self.db.query(User)
            .options(selectinload(User.venues))
            .filter(User.id == user_id)
            .first()
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def get_users(
        self,
        skip: int = 0,
        limit: int = 100,
        role: Optional[str] = None,
        approved: Optional[bool] = None
    ) -> List[User]:
        """
        Get users with optional role/approval filters, oldest first.
        """
        query = self._filtered(self.db.query(User).options(selectinload(User.venues)), role, approved)
        return query.order_by(asc(User.created_at)).offset(skip).limit(limit).all()

    def count_users(self, role: Optional[str] = None, approved: Optional[bool] = None) -> int:
        """Number of users matching the filters, ignoring pagination."""
        return self._filtered(self.db.query(User), role, approved).count()

    @staticmethod
    def _filtered(query, role: Optional[str], approved: Optional[bool]):
        if role:
            query = query.filter(User.role == role)
        if approved is not None:
            query = query.filter(User.approved == approved)
        return query

    def get_admins(self) -> List[User]:
        """Active admin and owner accounts, oldest first."""
        return (
            self.db.query(User)
            .filter(User.role.in_(ADMIN_ROLES), User.is_active.is_(True))
            .order_by(asc(User.created_at))
            .all()
        )

    def count_admins(self) -> int:
        return self.db.query(User).filter(User.role.in_(ADMIN_ROLES)).count()

    def update_user(self, user_id: UUID, user_data: UserUpdate, actor: User) -> Optional[User]:
        """
        Update user information.

        Args:
            user_id: User UUID to update
            user_data: Updated user data
            actor: Admin performing the change

        Returns:
            Updated User instance or None if not found

        Raises:
            HTTPException: 409 on email clash, 400 when admins demote or
                deactivate themselves, 403 on owner accounts for non-owners
        """
        db_user = self.get_user(user_id)
        if not db_user:
            return None

        self._check_role_authority(actor, db_user.role)
        update_data = user_data.model_dump(exclude_unset=True)

        if db_user.id == actor.id:
            if update_data.get("role") not in (None, db_user.role) or update_data.get("is_active") is False:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="You cannot change your own role or deactivate yourself"
                )

        if update_data.get("email"):
            update_data["email"] = normalize_email(update_data["email"])
            self._ensure_email_free(update_data["email"], exclude_id=db_user.id)
        elif "email" in update_data:
            update_data.pop("email")

        if update_data.get("role"):
            self._check_role_authority(actor, update_data["role"])
        else:
            update_data.pop("role", None)

        if "password" in update_data:
            password = update_data.pop("password")
            if password:
                update_data["password_hash"] = hash_password(password)

        if "venue_ids" in update_data:
            venue_ids = update_data.pop("venue_ids")
            if venue_ids is not None:
                db_user.venues = self._load_venues(venue_ids)

        if update_data.get("is_active") is None:
            update_data.pop("is_active", None)

        for field, value in update_data.items():
            setattr(db_user, field, value)

        self.db.commit()
        self.db.refresh(db_user)

        logger.info("User %s updated by %s", db_user.email, actor.email)
        return db_user

    def reset_password(self, user_id: UUID, new_password: str) -> Optional[User]:
        """Store a new password for a user who proved ownership of the email."""
        db_user = self.get_user(user_id)
        if not db_user:
            return None
        db_user.password_hash = hash_password(new_password)
        self.db.commit()
        self.db.refresh(db_user)
        logger.info("Password reset for %s", db_user.email)
        return db_user

    def set_approval(self, user_id: UUID, approved: bool, actor: User) -> Optional[User]:
        """
        Approve a pending sign-up or revoke an approval.

        Raises:
            HTTPException: 400 when admins revoke their own approval
        """
        db_user = self.get_user(user_id)
        if not db_user:
            return None
        if db_user.id == actor.id and not approved:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot revoke your own approval"
            )
        self._check_role_authority(actor, db_user.role)

        if approved:
            db_user.approved = True
            db_user.approved_by = actor.id
            db_user.approved_at = datetime.now(timezone.utc)
        else:
            db_user.approved = False
            db_user.approved_by = None
            db_user.approved_at = None

        self.db.commit()
        self.db.refresh(db_user)

        logger.info("User %s %s by %s", db_user.email, "approved" if approved else "unapproved", actor.email)
        return db_user

    def get_report_recipient(self, excluding: UUID) -> User:
        """
        Admin that inherits the reports of a deleted user.

        The configured ``REPORTS_FALLBACK_ADMIN_EMAIL`` wins; otherwise the
        earliest active admin/owner other than ``excluding``.

        Raises:
            HTTPException: 409 when the designated admin is the one being
                deleted or no admin is available
        """
        fallback_email = normalize_email(global_settings.REPORTS_FALLBACK_ADMIN_EMAIL)
        if fallback_email:
            designated = self.get_user_by_email(fallback_email)
            if designated and designated.id == excluding:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="The designated reports admin cannot be deleted"
                )
            if designated and designated.is_active and designated.is_admin:
                return designated
            logger.warning("Fallback admin %s is not an active admin, using earliest admin", fallback_email)

        for admin in self.get_admins():
            if admin.id != excluding:
                return admin
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No other active admin is available to take over this user's reports"
        )

    def delete_user(self, user_id: UUID, actor: User) -> Optional[Tuple[int, UUID]]:
        """
        Delete a user after handing their reports over to an admin.

        Args:
            user_id: User UUID to delete
            actor: Admin performing the deletion

        Returns:
            (number of reports transferred, recipient id), or None if the
            user does not exist

        Raises:
            HTTPException: 400 on self-deletion, 409 when no recipient exists
        """
        if user_id == actor.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account"
            )
        db_user = self.get_user(user_id)
        if not db_user:
            return None
        self._check_role_authority(actor, db_user.role)

        deleted_email = db_user.email
        recipient = self.get_report_recipient(excluding=db_user.id)
        transferred = transfer_reports(self.db, db_user.id, recipient.id)
        (
            self.db.query(User)
            .filter(User.approved_by == db_user.id)
            .update({User.approved_by: None}, synchronize_session="fetch")
        )
        self.db.expire(db_user, ["reports"])
        self.db.delete(db_user)
        self.db.commit()

        logger.info(
            "User %s deleted by %s; %d report(s) transferred to %s",
            deleted_email, actor.email, transferred, recipient.email
        )
        return transferred, recipient.id


# Convenience functions for direct use
def create_user(db: Session, user_data: UserCreate, actor: Optional[User] = None) -> User:
    return UserCRUD(db).create_user(user_data, actor)


def signup_user(db: Session, signup_data: UserSignup) -> User:
    return UserCRUD(db).signup(signup_data)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    return UserCRUD(db).authenticate(email, password)


def get_user(db: Session, user_id: UUID) -> Optional[User]:
    return UserCRUD(db).get_user(user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return UserCRUD(db).get_user_by_email(email)


def get_users(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    role: Optional[str] = None,
    approved: Optional[bool] = None
) -> List[User]:
    return UserCRUD(db).get_users(skip, limit, role, approved)


def count_users(db: Session, role: Optional[str] = None, approved: Optional[bool] = None) -> int:
    return UserCRUD(db).count_users(role, approved)


def get_admins(db: Session) -> List[User]:
    return UserCRUD(db).get_admins()


def count_admins(db: Session) -> int:
    return UserCRUD(db).count_admins()


def update_user(db: Session, user_id: UUID, user_data: UserUpdate, actor: User) -> Optional[User]:
    return UserCRUD(db).update_user(user_id, user_data, actor)


def reset_user_password(db: Session, user_id: UUID, new_password: str) -> Optional[User]:
    return UserCRUD(db).reset_password(user_id, new_password)


def set_user_approval(db: Session, user_id: UUID, approved: bool, actor: User) -> Optional[User]:
    return UserCRUD(db).set_approval(user_id, approved, actor)


def delete_user(db: Session, user_id: UUID, actor: User) -> Optional[Tuple[int, UUID]]:
    return UserCRUD(db).delete_user(user_id, actor)
