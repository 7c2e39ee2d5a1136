"""
Venue model for the locations that file end-of-day reports.
"""

from uuid import uuid4
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from eod_backend.fastapi.dependencies.database import Base


class Venue(Base):
    """
    A restaurant location.

    Staff are granted access to venues through the ``user_venues``
    association; admins and owners see every venue.

    Attributes:
        id: Unique identifier for the venue
        name: Human-readable venue name
        slug: URL/file-name friendly form of the name
        is_active: Inactive venues are hidden from report forms
        reports: Daily reports filed for this venue
    """
    __tablename__ = "venues"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        index=True,
        doc="Unique identifier for the venue"
    )

    name = Column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        doc="Name of the venue (e.g., 'Sushi Old Town')"
    )

    slug = Column(
        String(120),
        unique=True,
        nullable=False,
        index=True,
        doc="Slug derived from the name, used in export file names"
    )

    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        doc="Whether the venue accepts new reports"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="Venue creation timestamp"
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        doc="Last venue update timestamp"
    )

    reports = relationship(
        "DailyReport",
        back_populates="venue",
        doc="Daily reports filed for this venue"
    )

    users = relationship(
        "User",
        secondary="user_venues",
        back_populates="venues",
        doc="Staff members with access to this venue"
    )

    def __repr__(self) -> str:
        return f"<Venue(id='{self.id}', name='{self.name}')>"

    def __str__(self) -> str:
        return self.name
