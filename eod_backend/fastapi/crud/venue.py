"""
Venue CRUD operations.
"""

import logging
from uuid import UUID
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import asc
from fastapi import HTTPException, status

from eod_backend.fastapi.core.utils import slugify
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.models.venue import Venue
from eod_backend.fastapi.schemas.venue import VenueCreate, VenueUpdate

logger = logging.getLogger(__name__)


def _ensure_unique(db: Session, name: str, slug: str, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(Venue).filter((Venue.name == name) | (Venue.slug == slug))
    if exclude_id is not None:
        query = query.filter(Venue.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Venue '{name}' already exists"
        )


def create_venue(db: Session, venue_data: VenueCreate) -> Venue:
    """
    Create a new venue.

    Args:
        db: Database session
        venue_data: Venue creation data

    Returns:
        Created Venue instance

    Raises:
        HTTPException: 400 if the name has no usable characters, 409 if a
            venue with the same name or slug exists
    """
    name = venue_data.name.strip()
    slug = slugify(name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Venue name must contain letters or digits"
        )
    _ensure_unique(db, name, slug)

    db_venue = Venue(name=name, slug=slug, is_active=venue_data.is_active)
    db.add(db_venue)
    db.commit()
    db.refresh(db_venue)

    logger.info("Venue %s created", db_venue.name)
    return db_venue


def get_venue(db: Session, venue_id: UUID) -> Optional[Venue]:
    return db.query(Venue).filter(Venue.id == venue_id).first()


def get_venues(db: Session, include_inactive: bool = False) -> List[Venue]:
    query = db.query(Venue)
    if not include_inactive:
        query = query.filter(Venue.is_active.is_(True))
    return query.order_by(asc(Venue.name)).all()


def get_venues_for_user(db: Session, user: User, include_inactive: bool = False) -> List[Venue]:
    """
    Venues a user may report for.

    Admins and owners see every venue; staff only their assigned ones.
    """
    if user.is_admin:
        return get_venues(db, include_inactive)
    venues = [venue for venue in user.venues if include_inactive or venue.is_active]
    return sorted(venues, key=lambda venue: venue.name)


def update_venue(db: Session, venue_id: UUID, venue_update: VenueUpdate) -> Optional[Venue]:
    """
    Update a venue; renaming regenerates the slug.

    Returns:
        Updated venue, or None if not found
    """
    db_venue = get_venue(db, venue_id)
    if not db_venue:
        return None

    if venue_update.name is not None:
        name = venue_update.name.strip()
        slug = slugify(name)
        if not slug:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Venue name must contain letters or digits"
            )
        _ensure_unique(db, name, slug, exclude_id=db_venue.id)
        db_venue.name = name
        db_venue.slug = slug

    if venue_update.is_active is not None:
        db_venue.is_active = venue_update.is_active

    db.commit()
    db.refresh(db_venue)
    return db_venue
