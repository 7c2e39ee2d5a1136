"""
User model for staff members, admins and owners.

A single table holds every account. The ``role`` column drives the
two-level permission check: ``staff`` on one side, ``admin``/``owner``
on the other.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Table
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from eod_backend.fastapi.dependencies.database import Base


class UserRole(str, Enum):
    STAFF = "staff"
    ADMIN = "admin"
    OWNER = "owner"


ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.OWNER.value)


user_venues = Table(
    "user_venues",
    Base.metadata,
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("venue_id", UUID(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """
    User account.

    Attributes:
        id: Unique identifier (UUID)
        email: Unique login email, stored lowercase
        display_name: Name shown on reports and in emails
        password_hash: Hashed password
        role: staff, admin or owner
        approved: Whether an admin accepted the sign-up
        approved_by: Admin who approved the account
        approved_at: When the account was approved
        is_active: Inactive users cannot log in
        venues: Venues a staff member may report for
    """

    __tablename__ = "users"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        index=True,
        doc="Unique user identifier"
    )

    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Login email (normalized to lowercase)"
    )

    display_name = Column(
        String(100),
        nullable=True,
        doc="Name shown in the UI and notification emails"
    )

    password_hash = Column(
        String(255),
        nullable=False,
        doc="Hashed password"
    )

    role = Column(
        String(20),
        nullable=False,
        default=UserRole.STAFF.value,
        index=True,
        doc="Account role: staff, admin or owner"
    )

    approved = Column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether the sign-up has been approved by an admin"
    )

    approved_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Admin who approved this account"
    )

    approved_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the account was approved"
    )

    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        doc="Whether the user can log in"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="Account creation timestamp"
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="Last account update timestamp"
    )

    venues = relationship(
        "Venue",
        secondary=user_venues,
        back_populates="users",
        doc="Venues this user may access"
    )

    reports = relationship(
        "DailyReport",
        back_populates="creator",
        foreign_keys="DailyReport.created_by",
        doc="Reports created by this user"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def venue_ids(self) -> list:
        return [venue.id for venue in self.venues]

    def can_access_venue(self, venue_id) -> bool:
        """Admins and owners reach every venue; staff only their assigned ones."""
        return self.is_admin or venue_id in self.venue_ids

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
