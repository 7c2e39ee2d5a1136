"""
Venue endpoints.
"""

from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.schemas.venue import VenueCreate, VenueListResponse, VenueRead, VenueUpdate
from eod_backend.fastapi.crud import venue as venue_crud
from eod_backend.security.dependencies import RequireAdmin, RequireAnyAuth

router = APIRouter()


@router.get("", response_model=VenueListResponse, summary="List Venues")
async def list_venues(
    db: Session = Depends(get_sync_db),
    current_user: User = RequireAnyAuth,
    include_inactive: bool = Query(False, description="Admins only: include inactive venues")
):
    """
    Venues the current user may report for.

    - **Admins** see every venue
    - **Staff** see only venues assigned to them
    """
    venues = venue_crud.get_venues_for_user(
        db, current_user, include_inactive=include_inactive and current_user.is_admin
    )
    return VenueListResponse(
        venues=[VenueRead.model_validate(venue) for venue in venues],
        total_count=len(venues)
    )


@router.post(
    "",
    response_model=VenueRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Venue"
)
async def create_venue(
    venue_data: VenueCreate,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    return VenueRead.model_validate(venue_crud.create_venue(db, venue_data))


@router.put("/{venue_id}", response_model=VenueRead, summary="Update Venue")
async def update_venue(
    venue_id: UUID,
    venue_update: VenueUpdate,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin
):
    """Rename or (de)activate a venue. Renaming regenerates the slug."""
    venue = venue_crud.update_venue(db, venue_id, venue_update)
    if not venue:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Venue with ID {venue_id} not found"
        )
    return VenueRead.model_validate(venue)
